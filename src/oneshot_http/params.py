"""
Typed request parameters.

:class:`RequestParams` replaces the loosely-typed ``{"GET": ..., "POST": ...}``
bag used by calling code. :meth:`RequestParams.from_mapping` still accepts that
bag so existing call sites keep working.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

QueryParams = Union[Mapping[str, Any], str]
HeaderParams = Union[Mapping[str, str], Sequence[str]]

_BAG_KEYS = {
    "GET": "get",
    "POST": "post",
    "headers": "headers",
    "oauth": "oauth",
    "is_response_json": "is_response_json",
    "pass_post_params_as_json": "pass_post_params_as_json",
    "warn_when_get_query_length_exceeds": "warn_when_get_query_length_exceeds",
}


@dataclass(frozen=True, slots=True)
class OAuthToken:
    """Pre-obtained OAuth credentials rendered into an ``Authorization`` header."""

    client_id: str
    token: str

    @classmethod
    def coerce(cls, value: Any) -> Optional[Union["OAuthToken", str]]:
        """Accept an :class:`OAuthToken`, a ``{client_id, token}`` mapping or an opaque string."""

        if not value:
            return None
        if isinstance(value, (cls, str)):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(client_id=str(value["client_id"]), token=str(value["token"]))
            except KeyError as exc:
                raise ValueError(f"OAuth mapping is missing the {exc.args[0]!r} key.") from exc
        raise TypeError(f"Unsupported OAuth credential type: {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class RequestParams:
    """
    Declarative description of a single request.

    Attributes
    ----------
    get:
        Query parameters, either a mapping or a pre-encoded string. Appended to
        the URL with ``?`` or ``&`` depending on whether the URL already has a
        query string. Empty values are skipped.
    post:
        Body parameters. Any non-``None`` value, even an empty one, turns the
        request into a ``POST``.
    headers:
        Mapping of header name to value, or a sequence of pre-formatted
        ``"Name: value"`` lines. Appended after headers supplied through the
        direct transport options.
    oauth:
        :class:`OAuthToken` or opaque credential string. ``None`` adds no
        ``Authorization`` header.
    is_response_json:
        Parse the body as JSON when the exchange is otherwise successful.
    pass_post_params_as_json:
        Serialize ``post`` with :func:`json.dumps` instead of form encoding.
    warn_when_get_query_length_exceeds:
        Emit a :class:`~oneshot_http.errors.ConfigurationWarning` when the final
        query string is longer than this many bytes. ``0`` disables the check.
    """

    get: Optional[QueryParams] = None
    post: Optional[QueryParams] = None
    headers: HeaderParams = field(default_factory=tuple)
    oauth: Optional[Union[OAuthToken, str]] = None
    is_response_json: bool = False
    pass_post_params_as_json: bool = False
    warn_when_get_query_length_exceeds: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "oauth", OAuthToken.coerce(self.oauth))
        if self.warn_when_get_query_length_exceeds < 0:
            raise ValueError("warn_when_get_query_length_exceeds must be zero or positive.")

    @classmethod
    def from_mapping(cls, bag: Optional[Mapping[str, Any]]) -> "RequestParams":
        """Build parameters from the ``GET``/``POST``/``headers``/... bag."""

        if not bag:
            return cls()
        unknown = sorted(str(key) for key in bag if key not in _BAG_KEYS)
        if unknown:
            raise ValueError(f"Unknown request parameter(s): {', '.join(unknown)}")
        kwargs = {_BAG_KEYS[key]: value for key, value in bag.items() if value is not None}
        return cls(**kwargs)

    @classmethod
    def coerce(cls, params: Union["RequestParams", Mapping[str, Any], None]) -> "RequestParams":
        if isinstance(params, cls):
            return params
        return cls.from_mapping(params)


@dataclass(frozen=True, slots=True)
class RequestSpec:
    """Everything the caller declared for one exchange, before normalisation."""

    url: str
    params: RequestParams = field(default_factory=RequestParams)
    direct_transport_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "direct_transport_options", MappingProxyType(dict(self.direct_transport_options)))
