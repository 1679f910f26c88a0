"""
Transport contract and its ``httpx`` implementation.

The pipeline talks to the network only through :class:`Transport`. The default
:class:`HttpxTransport` opens one :class:`httpx.Client` per call and reports
transport failures with curl-compatible error codes so diagnostics stay
comparable with command-line reproductions.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import httpx

from .normalizer import PreparedRequest

HeaderCallback = Callable[[str], None]

CURLE_UNSUPPORTED_PROTOCOL = 1
CURLE_FAILED_INIT = 2
CURLE_URL_MALFORMAT = 3
CURLE_COULDNT_RESOLVE_PROXY = 5
CURLE_COULDNT_RESOLVE_HOST = 6
CURLE_COULDNT_CONNECT = 7
CURLE_WEIRD_SERVER_REPLY = 8
CURLE_OPERATION_TIMEDOUT = 28
CURLE_TOO_MANY_REDIRECTS = 47
CURLE_SEND_ERROR = 55
CURLE_RECV_ERROR = 56
CURLE_BAD_CONTENT_ENCODING = 61

# Checked in order; subclasses must precede their bases.
_ERROR_CODES: Sequence[Tuple[type, int]] = (
    (httpx.TimeoutException, CURLE_OPERATION_TIMEDOUT),
    (httpx.ProxyError, CURLE_COULDNT_RESOLVE_PROXY),
    (httpx.UnsupportedProtocol, CURLE_UNSUPPORTED_PROTOCOL),
    (httpx.ConnectError, CURLE_COULDNT_CONNECT),
    (httpx.RemoteProtocolError, CURLE_WEIRD_SERVER_REPLY),
    (httpx.ReadError, CURLE_RECV_ERROR),
    (httpx.WriteError, CURLE_SEND_ERROR),
    (httpx.TooManyRedirects, CURLE_TOO_MANY_REDIRECTS),
    (httpx.DecodingError, CURLE_BAD_CONTENT_ENCODING),
    (httpx.InvalidURL, CURLE_URL_MALFORMAT),
)
_DNS_MARKERS = ("name or service not known", "nodename nor servname", "getaddrinfo failed", "name resolution", "no address associated")


@dataclass(slots=True)
class TransportResult:
    """Raw outcome of one exchange as reported by a :class:`Transport`."""

    status_code: int = 0
    body: str = ""
    error_code: int = 0
    error_text: str = ""
    info: Dict[str, Any] = field(default_factory=dict)


class Transport(Protocol):
    """Performs exactly one HTTP exchange."""

    def perform(self, request: PreparedRequest, on_header: HeaderCallback) -> TransportResult:
        """
        Execute ``request`` and return its outcome.

        ``on_header`` is called once per received header line, status line
        included. Transport-level failures are reported through
        ``error_code``/``error_text`` rather than raised.
        """


def error_code_for(exc: BaseException) -> int:
    """Map an ``httpx`` exception onto the closest curl error code."""

    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            if code == CURLE_COULDNT_CONNECT and any(marker in str(exc).lower() for marker in _DNS_MARKERS):
                return CURLE_COULDNT_RESOLVE_HOST
            return code
    return CURLE_FAILED_INIT


def split_header_line(line: str) -> Optional[Tuple[str, str]]:
    name, colon, value = line.partition(":")
    if not colon or not name.strip():
        return None
    return name.strip(), value.strip()


def encode_header(name: str, value: str) -> Tuple[bytes, bytes]:
    """Header names must be latin-1; values go out as raw UTF-8 bytes."""

    return name.encode("latin-1"), value.encode("utf-8")


def serialise_request_head(request: httpx.Request) -> str:
    """Render the request line and headers the way they went on the wire."""

    target = request.url.raw_path.decode("ascii", errors="replace")
    lines = [f"{request.method} {target} HTTP/1.1"]
    lines.extend(f"{name.decode('latin-1')}: {value.decode('utf-8', errors='replace')}" for name, value in request.headers.raw)
    return "\r\n".join(lines) + "\r\n\r\n"


class HttpxTransport:
    """
    :class:`Transport` backed by :class:`httpx.Client`.

    Parameters
    ----------
    transport:
        Optional low-level ``httpx`` transport, e.g. :class:`httpx.MockTransport`
        in tests. ``None`` uses the default network transport.
    """

    def __init__(self, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport

    def _build_client(self, options: Mapping[str, Any], event_hooks: Mapping[str, List[Callable[..., Any]]]) -> httpx.Client:
        timeout = httpx.Timeout(options.get("timeout"), connect=options.get("connect_timeout"))
        return httpx.Client(
            transport=self._transport,
            verify=options.get("verify", True),
            follow_redirects=bool(options.get("follow_redirects")),
            max_redirects=int(options.get("max_redirects") or 20),
            timeout=timeout,
            event_hooks=dict(event_hooks),
        )

    def perform(self, request: PreparedRequest, on_header: HeaderCallback) -> TransportResult:
        options = request.options
        sent_heads: List[str] = []

        def on_request(outgoing: httpx.Request) -> None:
            if options.get("capture_request_headers", True):
                sent_heads.append(serialise_request_head(outgoing))

        def on_response(incoming: httpx.Response) -> None:
            on_header(f"{incoming.http_version} {incoming.status_code} {incoming.reason_phrase}".strip())
            for raw_name, raw_value in incoming.headers.raw:
                on_header(f"{raw_name.decode('latin-1')}: {raw_value.decode('latin-1')}")

        content = request.body.encode("utf-8") if request.body is not None else None
        info: Dict[str, Any] = {
            "url": request.url,
            "method": request.method,
            "http_code": 0,
            "size_upload": len(content or b""),
        }
        started = time.perf_counter()

        def failure(exc: Exception, code: int) -> TransportResult:
            info.update(
                total_time=round(time.perf_counter() - started, 6),
                request_header=sent_heads[-1] if sent_heads else "",
                exception=type(exc).__name__,
            )
            return TransportResult(error_code=code, error_text=str(exc) or type(exc).__name__, info=info)

        try:
            headers = [encode_header(*pair) for pair in (split_header_line(line) for line in request.header_lines) if pair]
            with self._build_client(options, {"request": [on_request], "response": [on_response]}) as client:
                response = client.request(request.method, request.url, headers=headers, content=content)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return failure(exc, error_code_for(exc))
        except Exception as exc:  # request could not be built
            return failure(exc, CURLE_FAILED_INIT)

        info.update(
            url=str(response.url),
            http_code=response.status_code,
            http_version=response.http_version,
            content_type=response.headers.get("content-type"),
            redirect_count=len(response.history),
            total_time=round(time.perf_counter() - started, 6),
            size_download=len(response.content),
            request_header=sent_heads[-1] if sent_heads else "",
        )
        body = response.text if options.get("capture_body", True) else ""
        return TransportResult(status_code=response.status_code, body=body, info=info)
