"""
Settings shared by requests issued from one process.

Settings are loaded from ``.secrets/secret.toml`` by default. The lookup order is:

1. Explicit ``ONESHOT_HTTP_SETTINGS_PATH`` environment variable.
2. Project-relative ``.secrets/secret.toml`` (both from CWD and the project root).
3. Project-relative ``.secrets/secrets.toml``.
4. Fallback to ``.secrets/secrets.example.toml`` for scaffolding values.

Recognised sections::

    [http]
    connect_timeout = 10
    timeout = 30
    verify = true
    follow_redirects = true
    max_redirects = 20
    warn_when_get_query_length_exceeds = 2000

    [oauth]
    client_id = "..."
    token = "..."

``ONESHOT_HTTP_CONNECT_TIMEOUT`` and ``ONESHOT_HTTP_VERIFY`` override the file.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .errors import SettingsError
from .params import OAuthToken, RequestParams

_ENV_PATH = "ONESHOT_HTTP_SETTINGS_PATH"
_ENV_CONNECT_TIMEOUT = "ONESHOT_HTTP_CONNECT_TIMEOUT"
_ENV_VERIFY = "ONESHOT_HTTP_VERIFY"


@dataclass(slots=True)
class HTTPSettings:
    """Transport defaults applied to every request built from a :class:`SettingsBundle`."""

    connect_timeout: Optional[float] = None
    timeout: Optional[float] = None
    verify: Optional[bool] = None
    follow_redirects: Optional[bool] = None
    max_redirects: Optional[int] = None
    warn_when_get_query_length_exceeds: int = 0

    def as_transport_options(self) -> Dict[str, Any]:
        """Return only the options that were configured, as direct transport options."""

        candidates = {
            "connect_timeout": self.connect_timeout,
            "timeout": self.timeout,
            "verify": self.verify,
            "follow_redirects": self.follow_redirects,
            "max_redirects": self.max_redirects,
        }
        return {key: value for key, value in candidates.items() if value is not None}


@dataclass(slots=True)
class SettingsBundle:
    """Parsed settings plus the raw TOML data."""

    source_path: Optional[Path]
    data: Dict[str, Dict[str, object]]
    http: HTTPSettings = field(default_factory=HTTPSettings)
    oauth: Optional[Union[OAuthToken, str]] = None

    def apply(self, params: RequestParams) -> RequestParams:
        """Fill ``oauth`` and the query-length threshold when ``params`` leaves them unset."""

        updates: Dict[str, Any] = {}
        if params.oauth is None and self.oauth:
            updates["oauth"] = self.oauth
        if not params.warn_when_get_query_length_exceeds and self.http.warn_when_get_query_length_exceeds:
            updates["warn_when_get_query_length_exceeds"] = self.http.warn_when_get_query_length_exceeds
        return replace(params, **updates) if updates else params


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(_ENV_PATH)
    if env_override:
        yield Path(env_override).expanduser()

    search_roots = [Path.cwd()]
    project_root = _discover_project_root()
    if project_root and project_root not in search_roots:
        search_roots.append(project_root)

    seen: set[Path] = set()
    for base in search_roots:
        secrets_dir = base / ".secrets"
        for filename in ("secret.toml", "secrets.toml", "secrets.example.toml"):
            candidate = secrets_dir / filename
            if candidate not in seen:
                seen.add(candidate)
                yield candidate


def _load_toml(path: Path) -> Dict[str, Dict[str, object]]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Invalid settings file {path}: {exc}") from exc


def _coerce_bool(value: object, key: str) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise SettingsError(f"Setting '{key}' must be a boolean, got {value!r}.")


def _coerce_number(value: object, key: str, kind: type) -> Optional[Any]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise SettingsError(f"Setting '{key}' must be numeric, got {value!r}.")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"Setting '{key}' must be numeric, got {value!r}.") from exc


def _extract_http_settings(raw: Dict[str, Dict[str, object]]) -> HTTPSettings:
    section = raw.get("http", {}) if isinstance(raw, dict) else {}
    if not isinstance(section, dict):
        section = {}

    connect_timeout = os.getenv(_ENV_CONNECT_TIMEOUT) or section.get("connect_timeout")
    verify = os.getenv(_ENV_VERIFY) or section.get("verify")
    return HTTPSettings(
        connect_timeout=_coerce_number(connect_timeout, "connect_timeout", float),
        timeout=_coerce_number(section.get("timeout"), "timeout", float),
        verify=_coerce_bool(verify, "verify"),
        follow_redirects=_coerce_bool(section.get("follow_redirects"), "follow_redirects"),
        max_redirects=_coerce_number(section.get("max_redirects"), "max_redirects", int),
        warn_when_get_query_length_exceeds=_coerce_number(section.get("warn_when_get_query_length_exceeds"), "warn_when_get_query_length_exceeds", int) or 0,
    )


def _extract_oauth(raw: Dict[str, Dict[str, object]]) -> Optional[Union[OAuthToken, str]]:
    section = raw.get("oauth") if isinstance(raw, dict) else None
    if not isinstance(section, dict):
        return None
    token = section.get("token")
    if not isinstance(token, str) or not token:
        return None
    client_id = section.get("client_id")
    if isinstance(client_id, str) and client_id:
        return OAuthToken(client_id=client_id, token=token)
    return token


def load_settings(strict: bool = False) -> SettingsBundle:
    """
    Attempt to load settings from the configured locations.

    Parameters
    ----------
    strict:
        When ``True`` the function raises ``FileNotFoundError`` if no settings file is
        discovered. Defaults to ``False`` so requests work without any file.
    """

    for path in _candidate_paths():
        if path.is_file():
            data = _load_toml(path)
            return SettingsBundle(
                source_path=path,
                data=data,
                http=_extract_http_settings(data),
                oauth=_extract_oauth(data),
            )

    if strict:
        raise FileNotFoundError(f"No settings file found. Configure {_ENV_PATH} or .secrets/secret.toml.")

    return SettingsBundle(source_path=None, data={}, http=_extract_http_settings({}))
