"""Compact text and JSON formatting for CLI output."""

from __future__ import annotations

import json as _json
from datetime import datetime, timezone

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "ccsnav-envelope-v1"

KIND_ABBREV = {
    "labelRoutine": "lbl",
    "routine": "rtn",
    "macro": "mac",
    "class": "cls",
}


def abbrev_kind(kind) -> str:
    key = getattr(kind, "value", kind)
    return KIND_ABBREV.get(key, key)


def loc(path: str, line: int | None = None) -> str:
    if line is not None:
        return f"{path}:{line}"
    return path


def location_line(location) -> str:
    """``uri:line`` with the 0-based line shown 1-based, as editors number them."""
    return loc(location.uri, location.line + 1)


def format_table(headers: list[str], rows: list[list]) -> str:
    """Left-aligned columns under a dashed rule; cells beyond the headers are ignored."""
    if not rows:
        return "(none)"
    cells = [[str(c) for c in row[: len(headers)]] for row in rows]
    widths = [max([len(h)] + [len(row[i]) for row in cells if i < len(row)]) for i, h in enumerate(headers)]
    out = ["  ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip()]
    out.append("  ".join("-" * w for w in widths))
    for row in cells:
        out.append("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())
    return "\n".join(out)


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering."""
    return _json.dumps(data, indent=2, default=str, sort_keys=True)


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Returns a dict with at minimum::

        {
            "schema":  "ccsnav-envelope-v1",
            "command": "define",
            "version": "<current>",
            "summary": { ... },
            "_meta":   {"timestamp": "2026-02-12T14:30:00Z"},
            ...payload
        }
    """
    ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "summary": summary or {},
    }
    out.update(payload)
    out["_meta"] = {"timestamp": ts}
    return out


def _get_version() -> str:
    from ccsnav import __version__

    return __version__
