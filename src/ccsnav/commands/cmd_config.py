"""Manage per-project ccsnav configuration (.ccsnav/config.json)."""

from __future__ import annotations

import click

from ccsnav.config import find_project_root, load_project_config, load_settings, write_project_config
from ccsnav.output.formatter import json_envelope, to_json

_CONNECTION_OPTIONS = ("host", "port", "namespace", "username", "password", "https", "path_prefix")


def _masked(connection: dict) -> dict:
    shown = dict(connection)
    if shown.get("password"):
        shown["password"] = "***"
    return shown


@click.command("config")
@click.option("--host", default=None, help="Server host name.")
@click.option("--port", default=None, type=int, help="Server web port.")
@click.option("--namespace", default=None, help="Namespace definitions are resolved in.")
@click.option("--username", default=None, help="Basic-auth user.")
@click.option("--password", default=None, help="Basic-auth password (prefer CCSNAV_PASSWORD).")
@click.option("--https/--no-https", "https", default=None, help="Use https for the server URL.")
@click.option("--path-prefix", "path_prefix", default=None, help="Web application path prefix.")
@click.option("--timeout-ms", "timeout_ms", default=None, type=click.IntRange(min=1),
              help="Per-attempt request timeout in milliseconds (default 500).")
@click.option("--strict-ssl/--no-strict-ssl", "strict_ssl", default=None,
              help="Verify TLS certificates.")
@click.option("--debug-resolver/--no-debug-resolver", "debug_resolver", default=None,
              help="Log which resolver answered each lookup (with --verbose).")
@click.option("--show", is_flag=True, help="Print current configuration.")
@click.pass_context
def config(ctx, host, port, namespace, username, password, https, path_prefix,
           timeout_ms, strict_ssl, debug_resolver, show):
    """Manage per-project ccsnav configuration (.ccsnav/config.json).

    \b
      ccsnav config --host iris.local --port 52773 --namespace USER --username dev
      CCSNAV_PASSWORD=... ccsnav define src/Foo.mac 12 9

    Environment variables (``CCSNAV_HOST``, ``CCSNAV_PORT``, ``CCSNAV_NAMESPACE``,
    ``CCSNAV_USERNAME``, ``CCSNAV_PASSWORD``, ``CCSNAV_TIMEOUT_MS`` ...) take
    precedence over the file.
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    root = find_project_root()

    values = dict(host=host, port=port, namespace=namespace, username=username,
                  password=password, https=https, path_prefix=path_prefix)
    connection_updates = {k: values[k] for k in _CONNECTION_OPTIONS if values[k] is not None}
    updates: dict = {}
    if connection_updates:
        updates["connection"] = connection_updates
    if timeout_ms is not None:
        updates["request_timeout_ms"] = timeout_ms
    if strict_ssl is not None:
        updates["strict_ssl"] = strict_ssl
    if debug_resolver is not None:
        updates["debug_resolver"] = debug_resolver

    if updates and not show:
        config_path = write_project_config(updates, root)
        if "connection" in updates:
            updates["connection"] = _masked(updates["connection"])
        if json_mode:
            click.echo(to_json(json_envelope(
                "config",
                summary={"verdict": "saved"},
                config_path=str(config_path),
                **updates,
            )))
            return
        click.echo("Saved settings:")
        for k, v in updates.items():
            click.echo(f"  {k} = {v!r}")
        click.echo(f"Config written to {config_path}")
        return

    current = load_project_config(root)
    settings = load_settings(root)
    effective = {
        "request_timeout_ms": settings.request_timeout_ms,
        "max_attempts": settings.max_attempts,
        "strict_ssl": settings.strict_ssl,
        "debug_resolver": settings.debug_resolver,
        "connection": _masked(settings.connection),
    }
    ready = settings.connection_context().is_complete

    if json_mode:
        click.echo(to_json(json_envelope(
            "config",
            summary={"verdict": "ok", "connection_ready": ready},
            **effective,
        )))
        return
    if not current:
        click.echo("No .ccsnav/config.json found (using defaults and environment).")
    for k, v in effective.items():
        click.echo(f"  {k} = {v!r}")
    click.echo(f"Connection ready: {'yes' if ready else 'no (lookups fall back to local scan)'}")
