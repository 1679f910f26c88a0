"""
Single-request HTTP client with diagnostic failure reports.

:class:`Request` builds a request from declarative parameters, sends it once
through :class:`HttpxTransport`, classifies the outcome and, on failure, raises
an exception whose message contains the outbound request and the inbound
response verbatim. :func:`query` offers the same pipeline without raising.
"""

from .classifier import Outcome, Verdict, classify
from .config import HTTPSettings, SettingsBundle, load_settings
from .diagnostics import render_failure
from .errors import (
    ConfigurationWarning,
    DecodeError,
    HTTPRequestError,
    RequestAlreadySentError,
    RequestFailedError,
    SettingsError,
    StatusError,
    TransportError,
)
from .executor import ResponseHeaders, ResponseRecord, execute
from .normalizer import DEFAULT_TRANSPORT_OPTIONS, PreparedRequest, merge_transport_options, prepare_request
from .params import OAuthToken, RequestParams, RequestSpec
from .request import QueryResult, Request, RequestState, query
from .transport import HttpxTransport, Transport, TransportResult

__all__ = [
    "ConfigurationWarning",
    "DEFAULT_TRANSPORT_OPTIONS",
    "DecodeError",
    "HTTPRequestError",
    "HTTPSettings",
    "HttpxTransport",
    "OAuthToken",
    "Outcome",
    "PreparedRequest",
    "QueryResult",
    "Request",
    "RequestAlreadySentError",
    "RequestFailedError",
    "RequestParams",
    "RequestSpec",
    "RequestState",
    "ResponseHeaders",
    "ResponseRecord",
    "SettingsBundle",
    "SettingsError",
    "StatusError",
    "Transport",
    "TransportError",
    "TransportResult",
    "Verdict",
    "classify",
    "execute",
    "load_settings",
    "merge_transport_options",
    "prepare_request",
    "query",
    "render_failure",
]
