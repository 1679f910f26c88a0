"""
Execute a prepared request once and capture everything about the exchange.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .core.logging import get_logger, log_with_extra
from .normalizer import PreparedRequest
from .transport import HeaderCallback, Transport

logger = get_logger(__name__)


class ResponseHeaders:
    """
    Ordered response header lines.

    A ``Name: value`` line overwrites an earlier entry with the same name
    (compared case-insensitively) in its original position. Lines without a
    colon, such as status lines, are kept as positional entries with no name.
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[Optional[str], str]] = []
        self._index: Dict[str, int] = {}

    def add_line(self, line: str) -> None:
        work = line.strip()
        if not work:
            return
        name, colon, value = work.partition(":")
        name = name.strip()
        if not colon or not name:
            self._entries.append((None, work))
            return
        key = name.lower()
        if key in self._index:
            position = self._index[key]
            self._entries[position] = (self._entries[position][0], value.strip())
        else:
            self._index[key] = len(self._entries)
            self._entries.append((name, value.strip()))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        position = self._index.get(name.lower())
        return default if position is None else self._entries[position][1]

    @property
    def named(self) -> Dict[str, str]:
        return {name: value for name, value in self._entries if name is not None}

    @property
    def positional(self) -> List[str]:
        return [value for name, value in self._entries if name is None]

    def lines(self) -> List[str]:
        return [value if name is None else f"{name}: {value}" for name, value in self._entries]

    def __iter__(self) -> Iterator[Tuple[Optional[str], str]]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __repr__(self) -> str:
        return f"ResponseHeaders({self._entries!r})"


def make_header_collector(headers: ResponseHeaders) -> HeaderCallback:
    """Return a callback feeding raw header lines into ``headers``."""

    def collect(line: str) -> None:
        headers.add_line(line)

    return collect


@dataclass(frozen=True, slots=True)
class ResponseRecord:
    """Captured result of executing one :class:`PreparedRequest`."""

    status_code: int
    headers: ResponseHeaders
    raw_body: str
    sent_at: datetime
    received_at: datetime
    transport_error_code: int = 0
    transport_error_text: str = ""
    transport_diagnostics: Mapping[str, Any] = field(default_factory=dict)
    decode_error_code: Optional[int] = None
    decode_error_text: Optional[str] = None

    @property
    def elapsed(self) -> timedelta:
        return self.received_at - self.sent_at


def execute(request: PreparedRequest, transport: Transport) -> ResponseRecord:
    """Run ``request`` through ``transport``; never call twice for the same request."""

    headers = ResponseHeaders()
    log_with_extra(logger, logging.DEBUG, "HTTP request", {"method": request.method, "url": request.url})
    sent_at = datetime.now(UTC)
    result = transport.perform(request, make_header_collector(headers))
    received_at = datetime.now(UTC)
    record = ResponseRecord(
        status_code=result.status_code,
        headers=headers,
        raw_body=result.body,
        sent_at=sent_at,
        received_at=received_at,
        transport_error_code=result.error_code,
        transport_error_text=result.error_text,
        transport_diagnostics=dict(result.info),
    )
    log_with_extra(
        logger,
        logging.DEBUG,
        "HTTP response",
        {
            "method": request.method,
            "url": request.url,
            "status_code": record.status_code,
            "duration": record.elapsed.total_seconds(),
            "error_code": record.transport_error_code or None,
        },
    )
    return record
