from __future__ import annotations

import json

import httpx
import pytest

from oneshot_http import HttpxTransport, Request, RequestState, StatusError, TransportError, query
from oneshot_http.executor import ResponseHeaders, make_header_collector
from oneshot_http.normalizer import prepare_request
from oneshot_http.params import RequestParams, RequestSpec
from oneshot_http.transport import (
    CURLE_COULDNT_CONNECT,
    CURLE_COULDNT_RESOLVE_HOST,
    CURLE_FAILED_INIT,
    CURLE_OPERATION_TIMEDOUT,
    CURLE_TOO_MANY_REDIRECTS,
    CURLE_URL_MALFORMAT,
    error_code_for,
    split_header_line,
)


def _mock(handler) -> HttpxTransport:
    return HttpxTransport(transport=httpx.MockTransport(handler))


def test_request_reaches_server_with_headers_and_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = request.content
        return httpx.Response(200, json={"ok": True}, headers={"X-Trace": "abc"})

    request = Request(
        "https://api.example.com/items",
        {"GET": {"q": "a b"}, "POST": {"name": "x"}, "pass_post_params_as_json": True, "oauth": "tok", "is_response_json": True},
        transport=_mock(handler),
    )

    assert request.send() == {"ok": True}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://api.example.com/items?q=a%20b"
    assert seen["auth"] == "OAuth tok"
    assert seen["content_type"] == "application/json"
    assert json.loads(seen["body"]) == {"name": "x"}

    headers = request.response.headers
    assert headers.positional == ["HTTP/1.1 200 OK"]
    assert headers.get("x-trace") == "abc"

    info = request.response.transport_diagnostics
    assert info["http_code"] == 200
    assert info["redirect_count"] == 0
    assert info["request_header"].startswith("POST /items?q=a%20b HTTP/1.1\r\n")
    assert "Authorization: OAuth tok\r\n" in info["request_header"]


def test_non_ascii_header_value_is_sent_as_utf8():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["raw"] = dict(request.headers.raw)
        return httpx.Response(200, text="ok")

    request = Request("https://api.example.com/weather", {"headers": {"X-City": "Zürich"}}, transport=_mock(handler))

    assert request.send() == "ok"
    assert seen["raw"][b"X-City"] == "Zürich".encode("utf-8")
    assert "X-City: Zürich\r\n" in request.response.transport_diagnostics["request_header"]


def test_non_ascii_oauth_token_does_not_escape_query():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = dict(request.headers.raw)[b"Authorization"]
        return httpx.Response(200, text="ok")

    outcome = query("https://api.example.com/me", {"oauth": "токен"}, transport=_mock(handler))

    assert outcome.ok
    assert outcome.result == "ok"
    assert seen["auth"] == "OAuth токен".encode("utf-8")


def test_unencodable_header_name_is_reported_as_failed_init():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never reached
        return httpx.Response(200)

    request = Request("https://api.example.com/x", {"headers": {"Город": "Zürich"}}, transport=_mock(handler))

    with pytest.raises(TransportError) as excinfo:
        request.send()

    assert request.state is RequestState.FAILED
    record = excinfo.value.response
    assert record.transport_error_code == CURLE_FAILED_INIT
    assert record.transport_diagnostics["exception"] == "UnicodeEncodeError"
    assert "Transport error code: 2" in excinfo.value.diagnostic


def test_redirect_hops_are_captured():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://api.example.com/new"})
        return httpx.Response(200, text="arrived")

    request = Request("https://api.example.com/old", transport=_mock(handler))

    assert request.send() == "arrived"
    assert request.response.headers.positional == ["HTTP/1.1 302 Found", "HTTP/1.1 200 OK"]
    assert request.response.transport_diagnostics["redirect_count"] == 1
    assert request.response.transport_diagnostics["request_header"].startswith("GET /new HTTP/1.1")


def test_redirect_not_followed_is_status_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://api.example.com/new"})

    request = Request("https://api.example.com/old", None, {"follow_redirects": False}, transport=_mock(handler))

    with pytest.raises(StatusError, match=r"HTTP code not 200 \(302\)"):
        request.send()


def test_timeout_is_reported_with_curl_code():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    request = Request("https://api.example.com/slow", transport=_mock(handler))

    with pytest.raises(TransportError) as excinfo:
        request.send()

    record = excinfo.value.response
    assert record.transport_error_code == CURLE_OPERATION_TIMEDOUT
    assert record.transport_error_text == "timed out"
    assert record.transport_diagnostics["exception"] == "ConnectTimeout"
    assert record.transport_diagnostics["request_header"].startswith("GET /slow HTTP/1.1")
    assert "Transport error code: 28" in excinfo.value.diagnostic


def test_header_callback_receives_status_line_first():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204, headers=[("X-A", "1"), ("X-A", "2")])

    headers = ResponseHeaders()
    prepared = prepare_request(RequestSpec(url="https://x.test/", params=RequestParams()))
    result = _mock(handler).perform(prepared, make_header_collector(headers))

    assert result.status_code == 204
    assert list(headers)[0] == (None, "HTTP/1.1 204 No Content")
    assert headers.get("X-A") == "2"


def test_body_not_returned_when_capture_disabled():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="secret")

    prepared = prepare_request(RequestSpec(url="https://x.test/"))
    options = dict(prepared.options, capture_body=False)
    prepared = type(prepared)(url=prepared.url, method="GET", body=None, header_lines=(), options=options)

    assert _mock(handler).perform(prepared, lambda line: None).body == ""


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (httpx.ReadTimeout("slow"), CURLE_OPERATION_TIMEDOUT),
        (httpx.ConnectError("[Errno 111] Connection refused"), CURLE_COULDNT_CONNECT),
        (httpx.ConnectError("[Errno -2] Name or service not known"), CURLE_COULDNT_RESOLVE_HOST),
        (httpx.TooManyRedirects("loop"), CURLE_TOO_MANY_REDIRECTS),
        (httpx.InvalidURL("bad"), CURLE_URL_MALFORMAT),
        (RuntimeError("other"), CURLE_FAILED_INIT),
    ],
)
def test_error_code_mapping(exc, code):
    assert error_code_for(exc) == code


def test_split_header_line():
    assert split_header_line("X-A:  1 ") == ("X-A", "1")
    assert split_header_line("no colon") is None
    assert split_header_line(": value") is None
