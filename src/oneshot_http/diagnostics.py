"""
Human-readable failure reports.

A report starts with the failure detail and then repeats the outbound request
and the inbound response verbatim, so a failed call can be debugged from the
exception message alone. Bodies are never truncated.
"""

from __future__ import annotations

import json
from typing import Any

from .classifier import Outcome, Verdict
from .executor import ResponseRecord
from .normalizer import PreparedRequest

REQUEST_BANNER = "=== REQUEST ==="
RESPONSE_BANNER = "=== RESPONSE ==="
CLOSING_BANNER = "========="


def print_as_json(data: Any) -> str:
    """Pretty-print ``data`` keeping non-ASCII characters and slashes readable."""

    return json.dumps(data, indent=4, ensure_ascii=False, default=str)


def describe_failure(verdict: Verdict) -> str:
    record = verdict.record
    if verdict.outcome is Outcome.TRANSPORT_FAILURE:
        return (
            f"{record.transport_error_text}\n\n"
            f"Transport error code: {record.transport_error_code}\n\n"
            f"Transport info: {print_as_json(dict(record.transport_diagnostics))}"
        )
    if verdict.outcome is Outcome.STATUS_FAILURE:
        return f"HTTP code not 200 ({record.status_code})"
    if verdict.outcome is Outcome.DECODE_FAILURE:
        return f"JSON decoding error: {record.decode_error_text} (code = {record.decode_error_code})"
    return ""


def print_request(request: PreparedRequest, record: ResponseRecord) -> str:
    head = str(record.transport_diagnostics.get("request_header") or "")
    if not head:
        # Nothing reached the wire; show what would have been sent.
        head = "\n".join([f"{request.method} {request.url}", *request.header_lines]) + "\n\n"
    text = head.replace("\r\n", "\n")
    if request.get:
        text += f"GET: {print_as_json(request.get)}\n\n"
    if request.post is not None:
        text += f"POST: {print_as_json(request.post)}\n\n"
    return text


def print_response(record: ResponseRecord) -> str:
    text = ""
    lines = record.headers.lines()
    if lines:
        text += "\n".join(lines) + "\n\n"
    return text + record.raw_body


def render_failure(verdict: Verdict, request: PreparedRequest) -> str:
    """Return the full diagnostic for a failed verdict, or ``""`` on success."""

    detail = describe_failure(verdict)
    if not detail:
        return ""
    return (
        f"{detail}\n\n"
        f"{REQUEST_BANNER}\n\n"
        f"{print_request(request, verdict.record)}"
        f"{RESPONSE_BANNER}\n\n"
        f"{print_response(verdict.record)}\n\n"
        f"{CLOSING_BANNER}\n\n"
    )
