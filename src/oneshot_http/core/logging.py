"""
Centralised logging helpers for oneshot-http.

Library modules obtain loggers through :func:`get_logger`, which never installs
handlers. Applications that want the structured ``key=value`` output call
:func:`configure_logging` once at start-up.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging import Logger, LoggerAdapter
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "WARNING"
_ENV_LEVEL = "ONESHOT_HTTP_LOG_LEVEL"

# Request fields lead the extras in this order; anything else follows sorted.
_REQUEST_FIELDS: Sequence[str] = (
    "method",
    "url",
    "status_code",
    "outcome",
    "duration",
    "error_code",
    "query_length",
    "threshold",
)

# Attributes every LogRecord carries; whatever else is on a record came in via ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))) | {"message", "asctime", "taskName"}

_configured = False


def _resolve_level(level: Optional[int | str]) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv(_ENV_LEVEL) or DEFAULT_LEVEL).strip().upper()
    return logging.getLevelNamesMapping().get(name, logging.WARNING)


def _request_extras(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    extras = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS and not key.startswith("_") and value is not None}
    for key in _REQUEST_FIELDS:
        if key in extras:
            yield key, extras.pop(key)
    yield from sorted(extras.items())


def _render_value(value: Any) -> str:
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, (list, tuple, set)):
        return "[" + ", ".join(_render_value(item) for item in value) + "]"
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Plain-text formatter that appends ``key=value`` pairs for structured extras."""

    def __init__(self) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = " ".join(f"{key}={_render_value(value)}" for key, value in _request_extras(record))
        return f"{line} | {fields}" if fields else line


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install a ``stderr`` handler with :class:`StructuredLogFormatter` on the root logger.

    Parameters
    ----------
    level:
        Optional logging level override. Falls back to ``ONESHOT_HTTP_LOG_LEVEL`` or ``WARNING``.
    force:
        When ``True`` the configuration is reapplied even if previously initialised.
    """

    global _configured
    if _configured and not force:
        return
    resolved = _resolve_level(level)
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(StructuredLogFormatter())
    logging.basicConfig(level=resolved, handlers=[handler], force=force)
    _configured = True


def get_logger(
    name: str,
    *,
    level: Optional[int | str] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> LoggerAdapter:
    """
    Return a :class:`logging.LoggerAdapter` carrying ``extra`` on every entry.

    Unlike an application entry point, library code must not install handlers,
    so this helper only resolves the logger; call :func:`configure_logging`
    from the application to get structured output on ``stderr``.
    """

    base: Logger = logging.getLogger(name)
    if level is not None:
        base.setLevel(_resolve_level(level))
    payload: MutableMapping[str, object] = {key: value for key, value in (extra or {}).items() if value is not None}
    return LoggerAdapter(base, payload)


def log_with_extra(
    logger: LoggerAdapter | Logger,
    level: int,
    message: str,
    payload: Optional[Mapping[str, object]] = None,
) -> None:
    """Emit ``message`` merging the adapter's bound extras with ``payload``."""

    if isinstance(logger, LoggerAdapter):
        merged: MutableMapping[str, object] = {}
        if isinstance(logger.extra, Mapping):
            merged.update({key: value for key, value in logger.extra.items() if value is not None})
        if payload:
            merged.update({key: value for key, value in payload.items() if value is not None})
        logger.logger.log(level, message, extra=merged or None)
        return
    logger.log(level, message, extra=dict(payload) if payload else None)
