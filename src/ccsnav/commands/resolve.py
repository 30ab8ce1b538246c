"""Shared resolver wiring and document helpers for all ccsnav commands."""

from __future__ import annotations

from pathlib import Path

import click

from ccsnav.config import Settings, find_project_root, load_settings, resolve_connection
from ccsnav.resolve.fallback import LocalDefinitionResolver
from ccsnav.resolve.models import Location, TextDocument
from ccsnav.resolve.provider import PrioritizedResolutionProvider
from ccsnav.resolve.remote import RemoteDefinitionResolver
from ccsnav.resolve.transport import default_transport_factory


def load_document(path: str) -> TextDocument:
    """Read *path* as a TextDocument, turning OS errors into click errors."""
    try:
        return TextDocument.from_path(path)
    except OSError as exc:
        raise click.FileError(path, hint=str(exc)) from exc


def open_document(uri: str) -> TextDocument:
    """Open a resolved location's target; server URIs are workspace paths."""
    path = Path(uri)
    if not path.is_absolute() and not path.exists():
        candidate = find_project_root() / uri.lstrip("/")
        if candidate.exists():
            path = candidate
    return TextDocument.from_path(path)


def settings_for(path: str) -> Settings:
    return load_settings(find_project_root(Path(path).resolve().parent))


def build_remote(settings: Settings) -> RemoteDefinitionResolver:
    return RemoteDefinitionResolver(
        transport_factory=default_transport_factory(verify_ssl=settings.strict_ssl),
        timeout_ms=settings.request_timeout_ms,
        max_attempts=settings.max_attempts,
    )


def build_provider(
    settings: Settings,
    workspace: str | Path | None,
    use_fallback: bool = True,
) -> PrioritizedResolutionProvider:
    fallback = None
    if use_fallback:
        fallback = LocalDefinitionResolver(workspace or find_project_root())
    return PrioritizedResolutionProvider(
        build_remote(settings),
        resolve_connection,
        fallback=fallback,
        debug_resolver=settings.debug_resolver,
    )


def as_locations(result) -> list[Location]:
    """Normalize a provider result (None, one Location, or many) to a list."""
    if result is None:
        return []
    if isinstance(result, Location):
        return [result]
    return list(result)
