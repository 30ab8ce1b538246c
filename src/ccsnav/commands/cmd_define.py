import asyncio

import click

from ccsnav.commands.resolve import as_locations, build_provider, load_document, settings_for
from ccsnav.exit_codes import NotFoundError
from ccsnav.output.formatter import json_envelope, location_line, to_json
from ccsnav.resolve.extract import extract_at
from ccsnav.resolve.models import Position


@click.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.argument('line', type=click.IntRange(min=1))
@click.argument('column', type=click.IntRange(min=1))
@click.option('--workspace', type=click.Path(exists=True, file_okay=False),
              help='Root scanned by the local fallback (default: project root)')
@click.option('--no-fallback', is_flag=True, help='Only ask the server; skip the local scan')
@click.pass_context
def define(ctx, path, line, column, workspace, no_fallback):
    """Find where the reference at LINE:COLUMN (1-based) is defined.

    The server is asked first; when it has no answer (or is not configured,
    slow, or unreachable) the workspace is scanned locally instead.
    """
    json_mode = ctx.obj.get('json') if ctx.obj else False
    document = load_document(path)
    if line > document.line_count:
        raise click.BadParameter(f"{path} has only {document.line_count} lines", param_hint="LINE")
    position = Position(line - 1, column - 1)

    via = {"source": "fallback"}

    def on_no_result(match):
        via["remote_miss"] = match.normalized_query

    provider = build_provider(settings_for(path), workspace, use_fallback=not no_fallback)
    provider.on_no_result = on_no_result
    match = extract_at(document.line_at(position.line), position.character)
    result = asyncio.run(provider.provide_definition(document, position))
    locations = as_locations(result)
    if match is not None and "remote_miss" not in via and locations:
        via["source"] = "remote"

    if json_mode:
        click.echo(to_json(json_envelope(
            "define",
            summary={
                "verdict": "found" if locations else "not found",
                "source": via["source"] if locations else None,
                "count": len(locations),
            },
            query=match.normalized_query if match else None,
            kind=match.kind.value if match else None,
            locations=[l.to_dict() for l in locations],
        )))
        return

    if not locations:
        what = match.normalized_query if match else f"{path}:{line}:{column}"
        raise NotFoundError(f"No definition found for {what}")
    if len(locations) > 1:
        click.echo(f"{len(locations)} candidates ({via['source']}):")
    for location in locations:
        click.echo(location_line(location))
