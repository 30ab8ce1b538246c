import asyncio

import click

from ccsnav.commands.resolve import (
    as_locations,
    build_provider,
    load_document,
    open_document,
    settings_for,
)
from ccsnav.exit_codes import NotFoundError
from ccsnav.output.formatter import format_table, json_envelope, location_line, to_json
from ccsnav.resolve.links import FOLLOW_DEFINITION_LINK_COMMAND, DefinitionLinkEnumerator
from ccsnav.resolve.models import FollowLinkTarget


@click.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def links(ctx, path):
    """List every clickable reference in a file (nothing is resolved)."""
    json_mode = ctx.obj.get('json') if ctx.obj else False
    document = load_document(path)
    # Enumeration never touches the provider.
    enumerator = DefinitionLinkEnumerator(provider=None, open_document=open_document)
    found = enumerator.provide_links(document)

    rows = []
    for link in found:
        text = document.line_at(link.start.line)[link.start.character:link.end.character]
        rows.append([
            f"{link.start.line + 1}:{link.start.character + 1}",
            text,
            link.query or text,
        ])

    if json_mode:
        click.echo(to_json(json_envelope(
            "links",
            summary={"verdict": f"{len(found)} links", "count": len(found)},
            command_id=FOLLOW_DEFINITION_LINK_COMMAND,
            links=[
                {
                    "start": {"line": l.start.line, "character": l.start.character},
                    "end": {"line": l.end.line, "character": l.end.character},
                    "args": l.target.to_args(),
                    "tooltip": l.tooltip,
                    "query": l.query,
                }
                for l in found
            ],
        )))
        return

    click.echo(f"{len(found)} links in {path}")
    if found:
        click.echo(format_table(["pos", "text", "query"], rows))


@click.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.argument('line', type=click.IntRange(min=0))
@click.argument('character', type=click.IntRange(min=0))
@click.option('--workspace', type=click.Path(exists=True, file_okay=False),
              help='Root scanned by the local fallback (default: project root)')
@click.pass_context
def follow(ctx, path, line, character, workspace):
    """Activate a link: resolve the reference at LINE/CHARACTER (0-based, as in `links --json`)."""
    json_mode = ctx.obj.get('json') if ctx.obj else False
    document = load_document(path)
    provider = build_provider(settings_for(path), workspace)
    enumerator = DefinitionLinkEnumerator(provider, open_document=open_document)

    result = asyncio.run(enumerator.follow_link(FollowLinkTarget(document.uri, line, character)))
    locations = as_locations(result)

    if json_mode:
        click.echo(to_json(json_envelope(
            "follow",
            summary={"verdict": "found" if locations else "not found", "count": len(locations)},
            locations=[l.to_dict() for l in locations],
        )))
        return
    if not locations:
        raise NotFoundError()
    for location in locations:
        click.echo(location_line(location))
