"""Per-project settings (.ccsnav/config.json) and connection lookup."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from ccsnav.resolve.models import ConnectionContext, TextDocument

log = logging.getLogger(__name__)

CONFIG_DIR = ".ccsnav"
CONFIG_NAME = "config.json"

DEFAULT_REQUEST_TIMEOUT_MS = 500
DEFAULT_MAX_ATTEMPTS = 2


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# env var -> (connection key, converter)
_CONNECTION_ENV = {
    "CCSNAV_HOST": ("host", str),
    "CCSNAV_PORT": ("port", int),
    "CCSNAV_NAMESPACE": ("namespace", str),
    "CCSNAV_USERNAME": ("username", str),
    "CCSNAV_PASSWORD": ("password", str),
    "CCSNAV_HTTPS": ("https", _truthy),
    "CCSNAV_PATH_PREFIX": ("path_prefix", str),
}


def find_project_root(start: str | Path = ".") -> Path:
    """Find the project root by looking for .git directory."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    origin = current
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    return origin


def get_config_path(project_root: Path | None = None) -> Path:
    if project_root is None:
        project_root = find_project_root()
    return project_root / CONFIG_DIR / CONFIG_NAME


def load_project_config(project_root: Path | None = None) -> dict:
    """Load .ccsnav/config.json if it exists.

    Returns an empty dict if the file is missing or malformed.
    """
    config_path = get_config_path(project_root)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Ignoring malformed %s: %s", config_path, exc)
            return {}
        if isinstance(data, dict):
            return data
    return {}


def write_project_config(config: dict, project_root: Path | None = None) -> Path:
    """Write (or update) .ccsnav/config.json.

    Merges *config* into the existing config so existing keys are preserved;
    a nested ``connection`` block is merged key by key.
    """
    if project_root is None:
        project_root = find_project_root()
    config_dir = project_root / CONFIG_DIR
    config_dir.mkdir(exist_ok=True)
    config_path = config_dir / CONFIG_NAME
    existing = load_project_config(project_root)
    for key, value in config.items():
        if key == "connection" and isinstance(value, dict):
            merged = dict(existing.get("connection") or {})
            merged.update(value)
            existing["connection"] = merged
        else:
            existing[key] = value
    config_path.write_text(json.dumps(existing, indent=2), encoding="utf-8")
    return config_path


@dataclass(frozen=True)
class Settings:
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    strict_ssl: bool = True
    debug_resolver: bool = False
    connection: dict = field(default_factory=dict)

    def connection_context(self) -> ConnectionContext:
        c = self.connection
        port = c.get("port")
        try:
            port = int(port) if port not in (None, "") else None
        except (TypeError, ValueError):
            log.warning("Ignoring non-numeric port %r", port)
            port = None
        return ConnectionContext(
            active=_truthy(c.get("active", True)),
            namespace=c.get("namespace") or None,
            host=c.get("host") or None,
            port=port,
            username=c.get("username") or None,
            password=c.get("password") or None,
            https=_truthy(c.get("https", False)),
            path_prefix=c.get("path_prefix") or "",
        )


def load_settings(project_root: Path | None = None, environ=None) -> Settings:
    """Settings from .ccsnav/config.json, overridden by ``CCSNAV_*`` env vars."""
    env = os.environ if environ is None else environ
    data = load_project_config(project_root)
    connection = dict(data.get("connection") or {})
    for var, (key, convert) in _CONNECTION_ENV.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            connection[key] = convert(raw)
        except ValueError:
            log.warning("Ignoring invalid %s=%r", var, raw)

    timeout = env.get("CCSNAV_TIMEOUT_MS") or data.get("request_timeout_ms", DEFAULT_REQUEST_TIMEOUT_MS)
    try:
        timeout = int(timeout)
    except (TypeError, ValueError):
        log.warning("Ignoring invalid request timeout %r", timeout)
        timeout = DEFAULT_REQUEST_TIMEOUT_MS

    max_attempts = data.get("max_attempts", DEFAULT_MAX_ATTEMPTS)
    try:
        max_attempts = int(max_attempts)
    except (TypeError, ValueError):
        log.warning("Ignoring invalid max_attempts %r", max_attempts)
        max_attempts = DEFAULT_MAX_ATTEMPTS

    return Settings(
        request_timeout_ms=timeout,
        max_attempts=max_attempts,
        strict_ssl=_truthy(data.get("strict_ssl", True)),
        debug_resolver=_truthy(env.get("CCSNAV_DEBUG_RESOLVER") or data.get("debug_resolver", False)),
        connection=connection,
    )


def resolve_connection(document: TextDocument, environ=None) -> ConnectionContext:
    """Connection context for the project containing *document*."""
    root = find_project_root(Path(document.uri).parent)
    return load_settings(root, environ).connection_context()
