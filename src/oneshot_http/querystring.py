"""
Query-string encoding helpers.

Encoding follows the conventions most PHP-style backends expect from
``http_build_query``: nested mappings and sequences are flattened with bracket
notation, booleans become ``1``/``0`` and ``None`` values are dropped. Spaces are
encoded as ``%20`` rather than ``+``.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import quote


def _flatten(prefix: str, value: Any, pairs: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, pairs)
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten(f"{prefix}[{index}]", item, pairs)
        return
    if isinstance(value, bool):
        pairs.append((prefix, "1" if value else "0"))
        return
    pairs.append((prefix, str(value)))


def build_query(params: Mapping[str, Any]) -> str:
    """Percent-encode ``params`` into ``key=value`` pairs joined by ``&``."""

    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        _flatten(str(key), value, pairs)
    return "&".join(f"{quote(key, safe='')}={quote(value, safe='')}" for key, value in pairs)


def make_query_string(params: Optional[Mapping[str, Any] | str]) -> str:
    """Return ``params`` encoded as a query string; strings are used verbatim."""

    if not params:
        return ""
    if isinstance(params, str):
        return params
    return build_query(params)


def query_component(url: str) -> str:
    """Return the part of ``url`` between ``?`` and ``#`` (empty when absent)."""

    return url.partition("#")[0].partition("?")[2]


def append_query(url: str, query: str) -> str:
    """
    Append ``query`` to ``url`` keeping exactly one ``?`` separator.

    ``&`` is used when the URL already carries a query string. A trailing
    ``#fragment`` is kept at the end. The URL itself is not validated.
    """

    if not query:
        return url
    base, hash_mark, fragment = url.partition("#")
    _, question_mark, existing = base.partition("?")
    if not question_mark:
        separator = "?"
    elif existing and not existing.endswith("&"):
        separator = "&"
    else:
        separator = ""
    return f"{base}{separator}{query}{hash_mark}{fragment}"
