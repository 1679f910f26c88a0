"""
Turn a :class:`~oneshot_http.params.RequestSpec` into a :class:`PreparedRequest`.

Transport options are merged in three tiers, lowest precedence first:

1. :data:`DEFAULT_TRANSPORT_OPTIONS`;
2. the caller's direct transport options;
3. settings the pipeline enforces (body and request-header capture, plus the
   method and body derived from ``POST`` parameters).
"""

from __future__ import annotations

import json
import logging
import warnings
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .core.logging import get_logger, log_with_extra
from .errors import ConfigurationWarning
from .params import HeaderParams, OAuthToken, QueryParams, RequestSpec
from .querystring import append_query, make_query_string, query_component

DEFAULT_TRANSPORT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "follow_redirects": True,
        "max_redirects": 20,
        "verify": False,  # development default
        "connect_timeout": 10.0,
        "timeout": None,
        "capture_body": True,
        "capture_request_headers": True,
    }
)
KNOWN_TRANSPORT_OPTIONS = frozenset(DEFAULT_TRANSPORT_OPTIONS) | {"headers", "method", "body", "content_type"}

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PreparedRequest:
    """Fully resolved request handed to the transport."""

    url: str
    method: str
    body: Optional[str]
    header_lines: Tuple[str, ...]
    options: Mapping[str, Any]
    get: Optional[QueryParams] = None
    post: Optional[QueryParams] = None

    @property
    def follow_redirects(self) -> bool:
        return bool(self.options.get("follow_redirects"))


def merge_transport_options(
    defaults: Mapping[str, Any],
    direct: Optional[Mapping[str, Any]],
    enforced: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Merge option tiers; later tiers win key by key.

    Unknown keys in ``direct`` raise :class:`ValueError` so that typos do not
    silently fall back to defaults.
    """

    direct = dict(direct or {})
    unknown = sorted(key for key in direct if key not in KNOWN_TRANSPORT_OPTIONS)
    if unknown:
        raise ValueError(f"Unknown transport option(s): {', '.join(unknown)}")
    merged: Dict[str, Any] = dict(defaults)
    merged.update(direct)
    merged.update(enforced or {})
    return merged


def format_header_lines(headers: HeaderParams) -> List[str]:
    """Render named headers as ``Name: value``; pre-formatted lines pass through."""

    if isinstance(headers, Mapping):
        return [f"{name}: {value}" for name, value in headers.items()]
    return [str(line) for line in headers]


def oauth_header_line(oauth: Optional[Union[OAuthToken, str]]) -> Optional[str]:
    if not oauth:
        return None
    if isinstance(oauth, OAuthToken):
        value = f'oauth_token="{oauth.token}", oauth_client_id="{oauth.client_id}"'
    else:
        value = oauth
    return f"Authorization: OAuth {value}"


def encode_body(post: QueryParams, *, as_json: bool) -> str:
    if isinstance(post, str):
        return post
    if as_json:
        return json.dumps(post, ensure_ascii=False)
    return make_query_string(post)


def _has_header(lines: Sequence[str], name: str) -> bool:
    lowered = name.lower()
    return any(line.partition(":")[0].strip().lower() == lowered for line in lines)


def warn_if_query_too_long(url: str, threshold: int) -> None:
    """Emit :class:`ConfigurationWarning` when the query of ``url`` exceeds ``threshold`` bytes."""

    if not threshold:
        return
    query = query_component(url)
    length = len(query.encode("utf-8"))
    if length <= threshold:
        return
    message = f"GET query length {length} exceeds {threshold} bytes: {query}"
    log_with_extra(logger, logging.WARNING, "GET query string too long", {"url": url, "query_length": length, "threshold": threshold})
    warnings.warn(message, ConfigurationWarning, stacklevel=3)


def prepare_request(spec: RequestSpec) -> PreparedRequest:
    """Build the final URL, body, header list and transport options for ``spec``."""

    params = spec.params
    url = append_query(spec.url, make_query_string(params.get))

    enforced: Dict[str, Any] = {"capture_body": True, "capture_request_headers": True}
    if params.post is not None:
        enforced["method"] = "POST"
        enforced["body"] = encode_body(params.post, as_json=params.pass_post_params_as_json)
        enforced["content_type"] = JSON_CONTENT_TYPE if params.pass_post_params_as_json else FORM_CONTENT_TYPE

    options = merge_transport_options(DEFAULT_TRANSPORT_OPTIONS, spec.direct_transport_options, enforced)

    header_lines = format_header_lines(options.pop("headers", None) or ())
    header_lines.extend(format_header_lines(params.headers))
    auth_line = oauth_header_line(params.oauth)
    if auth_line:
        header_lines.append(auth_line)
    content_type = options.pop("content_type", None)
    if content_type and not _has_header(header_lines, "Content-Type"):
        header_lines.append(f"Content-Type: {content_type}")

    body = options.pop("body", None)
    method = str(options.pop("method", None) or ("POST" if body is not None else "GET")).upper()

    warn_if_query_too_long(url, params.warn_when_get_query_length_exceeds)

    return PreparedRequest(
        url=url,
        method=method,
        body=body,
        header_lines=tuple(header_lines),
        options=MappingProxyType(options),
        get=params.get,
        post=params.post,
    )
