"""
Single-use request objects.

A :class:`Request` is prepared when constructed, sent at most once, and keeps
the captured response, the result and the diagnostic text afterwards::

    request = Request("https://api.example.com/items", {"GET": {"q": "a b"}, "is_response_json": True})
    items = request.send()

:func:`query` wraps the same pipeline for callers that prefer inspecting a
result object over handling exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, Union

from .classifier import Outcome, classify
from .config import SettingsBundle
from .core.logging import get_logger, log_with_extra
from .diagnostics import render_failure
from .errors import DecodeError, RequestAlreadySentError, RequestFailedError, StatusError, TransportError
from .executor import ResponseRecord, execute
from .normalizer import prepare_request
from .params import RequestParams, RequestSpec
from .transport import HttpxTransport, Transport

ParamsInput = Union[RequestParams, Mapping[str, Any], None]

_FAILURE_TYPES: Dict[Outcome, Type[RequestFailedError]] = {
    Outcome.TRANSPORT_FAILURE: TransportError,
    Outcome.STATUS_FAILURE: StatusError,
    Outcome.DECODE_FAILURE: DecodeError,
}


class RequestState(str, Enum):
    CONSTRUCTED = "constructed"
    SENT = "sent"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Request:
    """
    One HTTP exchange: prepare, send, classify and report.

    Parameters
    ----------
    url:
        Base URL. Query parameters from ``params`` are appended to it.
    params:
        :class:`RequestParams` or the equivalent ``GET``/``POST``/... mapping.
    direct_transport_options:
        Transport options overriding the defaults, e.g. ``{"connect_timeout": 3}``.
        Body capture and the ``POST`` method/body always win over these.
    transport:
        Transport used by :meth:`send`. Defaults to :class:`HttpxTransport`.
    settings:
        Optional :class:`SettingsBundle`; its transport options sit below
        ``direct_transport_options`` and its OAuth token and query-length
        threshold apply when ``params`` leaves them unset.
    """

    def __init__(
        self,
        url: str,
        params: ParamsInput = None,
        direct_transport_options: Optional[Mapping[str, Any]] = None,
        *,
        transport: Optional[Transport] = None,
        settings: Optional[SettingsBundle] = None,
    ) -> None:
        resolved = RequestParams.coerce(params)
        options: Dict[str, Any] = {}
        if settings is not None:
            resolved = settings.apply(resolved)
            options.update(settings.http.as_transport_options())
        options.update(direct_transport_options or {})

        self.spec = RequestSpec(url=url, params=resolved, direct_transport_options=options)
        self.prepared = prepare_request(self.spec)
        self.transport: Transport = transport or HttpxTransport()
        self.state = RequestState.CONSTRUCTED
        self.outcome: Optional[Outcome] = None
        self.response: Optional[ResponseRecord] = None
        self.result: Any = None
        self.error = ""
        self.logger = get_logger(f"{__name__}.Request", extra={"method": self.prepared.method, "url": self.prepared.url})

    def send(self) -> Any:
        """
        Perform the exchange and return the decoded JSON or the raw body.

        Raises
        ------
        TransportError, StatusError, DecodeError
            When the exchange is classified as failed. The exception message is
            the full diagnostic report.
        RequestAlreadySentError
            When called more than once.
        """

        if self.state is not RequestState.CONSTRUCTED:
            raise RequestAlreadySentError(f"Request to {self.prepared.url} was already sent.")
        self.state = RequestState.SENT

        record = execute(self.prepared, self.transport)
        verdict = classify(
            record,
            follow_redirects=self.prepared.follow_redirects,
            expect_json=self.spec.params.is_response_json,
        )
        self.response = verdict.record
        self.outcome = verdict.outcome
        self.result = verdict.result
        self.error = render_failure(verdict, self.prepared)

        if verdict.outcome.failed:
            self.state = RequestState.FAILED
            log_with_extra(
                self.logger,
                logging.WARNING,
                "HTTP request failed",
                {"status_code": record.status_code, "outcome": verdict.outcome.value, "error_code": record.transport_error_code or None},
            )
            raise _FAILURE_TYPES[verdict.outcome](self.error, outcome=verdict.outcome, response=verdict.record)

        self.state = RequestState.SUCCEEDED
        return verdict.result


@dataclass(slots=True)
class QueryResult:
    """Outcome of :func:`query`; ``error`` is empty when the call succeeded."""

    result: Any
    error: str
    request: RequestSpec
    response: Optional[ResponseRecord]
    outcome: Optional[Outcome] = None

    @property
    def ok(self) -> bool:
        return not self.error


def query(
    url: str,
    params: ParamsInput = None,
    direct_transport_options: Optional[Mapping[str, Any]] = None,
    *,
    transport: Optional[Transport] = None,
    settings: Optional[SettingsBundle] = None,
) -> QueryResult:
    """Send one request and return its result and diagnostic instead of raising."""

    request = Request(url, params, direct_transport_options, transport=transport, settings=settings)
    try:
        request.send()
    except RequestFailedError as exc:
        return QueryResult(result=request.result, error=exc.diagnostic, request=request.spec, response=exc.response, outcome=exc.outcome)
    return QueryResult(result=request.result, error="", request=request.spec, response=request.response, outcome=request.outcome)
