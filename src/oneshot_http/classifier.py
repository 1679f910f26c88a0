"""
Decide whether an exchange succeeded.

Checks run in a fixed order and stop at the first failure: transport error,
then HTTP status class, then JSON decoding. Decoding is only attempted when the
status is acceptable.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from .executor import ResponseRecord

JSON_ERROR_NONE = 0
JSON_ERROR_DEPTH = 1
JSON_ERROR_SYNTAX = 4


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    TRANSPORT_FAILURE = "transport"
    STATUS_FAILURE = "status"
    DECODE_FAILURE = "decode"

    @property
    def failed(self) -> bool:
        return self is not Outcome.SUCCEEDED


@dataclass(frozen=True, slots=True)
class Verdict:
    outcome: Outcome
    result: Any
    record: ResponseRecord


def is_status_acceptable(status_code: int, *, follow_redirects: bool) -> bool:
    """2xx always passes; 3xx only when redirects are followed."""

    status_class = status_code // 100
    if status_class == 2:
        return True
    return status_class == 3 and follow_redirects


def classify(record: ResponseRecord, *, follow_redirects: bool, expect_json: bool) -> Verdict:
    """
    Classify ``record`` and, when requested, decode its body.

    The returned verdict carries a copy of ``record`` with the decode fields
    filled in when decoding was attempted.
    """

    if record.transport_error_code:
        return Verdict(Outcome.TRANSPORT_FAILURE, record.raw_body, record)
    if not is_status_acceptable(record.status_code, follow_redirects=follow_redirects):
        return Verdict(Outcome.STATUS_FAILURE, record.raw_body, record)
    if not expect_json:
        return Verdict(Outcome.SUCCEEDED, record.raw_body, record)

    try:
        decoded = json.loads(record.raw_body)
    except RecursionError:
        failed = replace(record, decode_error_code=JSON_ERROR_DEPTH, decode_error_text="Maximum stack depth exceeded")
        return Verdict(Outcome.DECODE_FAILURE, record.raw_body, failed)
    except ValueError as exc:
        failed = replace(record, decode_error_code=JSON_ERROR_SYNTAX, decode_error_text=f"Syntax error: {exc}")
        return Verdict(Outcome.DECODE_FAILURE, record.raw_body, failed)
    decoded_record = replace(record, decode_error_code=JSON_ERROR_NONE, decode_error_text="No error")
    return Verdict(Outcome.SUCCEEDED, decoded, decoded_record)
