"""
Exception and warning types raised by the request pipeline.

Failures of a sent request share :class:`RequestFailedError`, which carries the
rendered diagnostic text so the caller can log or re-raise it without
re-running the exchange.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .classifier import Outcome
    from .executor import ResponseRecord


class HTTPRequestError(RuntimeError):
    """Base class for errors raised by :mod:`oneshot_http`."""


class RequestAlreadySentError(HTTPRequestError):
    """Raised when :meth:`Request.send` is called a second time."""


class SettingsError(HTTPRequestError):
    """Raised when a settings file cannot be parsed or holds invalid values."""


class RequestFailedError(HTTPRequestError):
    """
    Raised when a sent request is classified as a failure.

    Attributes
    ----------
    diagnostic:
        Full human-readable report including the outbound request and the
        inbound response.
    outcome:
        The classifier verdict that produced the failure.
    response:
        The captured :class:`~oneshot_http.executor.ResponseRecord`.
    """

    def __init__(self, diagnostic: str, *, outcome: "Outcome", response: Optional["ResponseRecord"] = None) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
        self.outcome = outcome
        self.response = response


class TransportError(RequestFailedError):
    """The exchange never completed (DNS, connection, TLS, timeout)."""


class StatusError(RequestFailedError):
    """The exchange completed with an unacceptable HTTP status class."""


class DecodeError(RequestFailedError):
    """The response body is not valid JSON although JSON was expected."""


class ConfigurationWarning(UserWarning):
    """Non-fatal warning about request parameters, e.g. an oversized query string."""
