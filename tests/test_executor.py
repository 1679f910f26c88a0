from __future__ import annotations

from datetime import UTC

from oneshot_http.executor import ResponseHeaders, execute, make_header_collector
from oneshot_http.normalizer import prepare_request
from oneshot_http.params import RequestSpec


def test_named_headers_overwrite_in_place():
    headers = ResponseHeaders()
    for line in ("HTTP/1.1 200 OK\r\n", "Set-Cookie: a=1", "X-Trace: first", "set-cookie: b=2", "\r\n"):
        headers.add_line(line)

    assert list(headers) == [(None, "HTTP/1.1 200 OK"), ("Set-Cookie", "b=2"), ("X-Trace", "first")]
    assert headers.get("SET-COOKIE") == "b=2"
    assert len(headers) == 3


def test_positional_lines_do_not_overwrite_named_headers():
    headers = ResponseHeaders()
    collect = make_header_collector(headers)
    for line in ("HTTP/1.1 302 Found", "Location: /next", "HTTP/1.1 200 OK", "Location"):
        collect(line)

    assert headers.positional == ["HTTP/1.1 302 Found", "HTTP/1.1 200 OK", "Location"]
    assert headers.named == {"Location": "/next"}
    assert "location" in headers


def test_value_split_on_first_colon_only():
    headers = ResponseHeaders()
    headers.add_line("  Date :  Mon, 19 Oct 2026 10:00:00 GMT  ")

    assert headers.lines() == ["Date: Mon, 19 Oct 2026 10:00:00 GMT"]


def test_line_with_empty_name_is_positional():
    headers = ResponseHeaders()
    headers.add_line(": value")
    headers.add_line("  : again")

    assert headers.positional == [": value", ": again"]
    assert headers.named == {}
    assert "" not in headers


def test_execute_captures_response(stub_transport):
    transport = stub_transport(status_code=201, body="created", info={"request_header": "POST / HTTP/1.1\r\n\r\n"})
    prepared = prepare_request(RequestSpec(url="https://api.example.com/items"))

    record = execute(prepared, transport)

    assert transport.calls == [prepared]
    assert record.status_code == 201
    assert record.raw_body == "created"
    assert record.headers.get("Content-Type") == "application/json"
    assert record.transport_error_code == 0
    assert record.transport_diagnostics["request_header"].startswith("POST /")
    assert record.decode_error_code is None
    assert record.sent_at.tzinfo is UTC
    assert record.sent_at <= record.received_at
    assert record.elapsed.total_seconds() >= 0


def test_execute_uses_fresh_headers_per_call(stub_transport):
    transport = stub_transport()
    prepared = prepare_request(RequestSpec(url="https://api.example.com/items"))

    first = execute(prepared, transport)
    second = execute(prepared, transport)

    assert first.headers is not second.headers
    assert len(first.headers) == len(second.headers) == 2
