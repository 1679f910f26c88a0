from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from oneshot_http.normalizer import PreparedRequest
from oneshot_http.transport import TransportResult

REQUEST_HEAD = "GET /items HTTP/1.1\r\nHost: api.example.com\r\nAccept: */*\r\n\r\n"


class StubTransport:
    """Transport double replaying canned header lines and a canned result."""

    def __init__(
        self,
        *,
        status_code: int = 200,
        body: str = "",
        header_lines: Sequence[str] = ("HTTP/1.1 200 OK", "Content-Type: application/json"),
        error_code: int = 0,
        error_text: str = "",
        info: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.header_lines = list(header_lines)
        self.error_code = error_code
        self.error_text = error_text
        self.info = {"request_header": REQUEST_HEAD} if info is None else info
        self.calls: List[PreparedRequest] = []

    def perform(self, request: PreparedRequest, on_header: Callable[[str], None]) -> TransportResult:
        self.calls.append(request)
        for line in self.header_lines:
            on_header(line)
        return TransportResult(
            status_code=self.status_code,
            body=self.body,
            error_code=self.error_code,
            error_text=self.error_text,
            info=dict(self.info),
        )


@pytest.fixture()
def stub_transport() -> Callable[..., StubTransport]:
    return StubTransport


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("ONESHOT_HTTP_SETTINGS_PATH", "ONESHOT_HTTP_CONNECT_TIMEOUT", "ONESHOT_HTTP_VERIFY"):
        monkeypatch.delenv(name, raising=False)
