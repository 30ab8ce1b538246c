import asyncio

import click

from ccsnav.commands.resolve import build_remote, load_document, open_document, settings_for
from ccsnav.config import resolve_connection
from ccsnav.exit_codes import InvalidFormatError, NotFoundError
from ccsnav.output.formatter import json_envelope, location_line, to_json
from ccsnav.resolve.jump import InvalidJumpFormat, RoutineJumpResolver, parse_jump_spec
from ccsnav.resolve.models import LabelNotFoundInRoutine, Resolved, RoutineNotFound


def _outcome_dict(outcome) -> dict:
    if isinstance(outcome, Resolved):
        return {"outcome": "resolved", "location": outcome.location.to_dict()}
    if isinstance(outcome, LabelNotFoundInRoutine):
        return {"outcome": "label_not_found", "routine": outcome.routine, "label": outcome.label}
    if isinstance(outcome, RoutineNotFound):
        return {"outcome": "routine_not_found", "routine": outcome.routine}
    return {"outcome": None}


@click.command()
@click.argument('address')
@click.option('--from', 'source', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Document the jump is made from (selects the server connection)')
@click.option('--show', is_flag=True, help='Print the target line')
@click.pass_context
def jump(ctx, address, source, show):
    """Jump to ADDRESS given as Label[+Offset]^Routine.

    \b
      ccsnav jump 'Start+3^MYROUTINE' --from src/Caller.mac
    """
    json_mode = ctx.obj.get('json') if ctx.obj else False
    try:
        request = parse_jump_spec(address)
    except InvalidJumpFormat as exc:
        raise InvalidFormatError(f"{exc}: {address!r}") from exc

    document = load_document(source)
    warnings = []
    revealed = []
    resolver = RoutineJumpResolver(
        build_remote(settings_for(source)),
        resolve_connection,
        open_document=open_document,
        reveal=revealed.append,
        notify=warnings.append,
    )
    outcome = asyncio.run(resolver.resolve_jump(
        request.routine, request.label, request.offset_lines, source_document=document,
    ))

    if json_mode:
        click.echo(to_json(json_envelope(
            "jump",
            summary={"verdict": _outcome_dict(outcome)["outcome"], "warnings": warnings},
            query=request.query,
            offset=request.offset_lines,
            **_outcome_dict(outcome),
        )))
        return

    if not isinstance(outcome, Resolved):
        raise NotFoundError(warnings[-1] if warnings else f"Cannot jump to {address}")

    location = revealed[-1] if revealed else outcome.location
    click.echo(location_line(location))
    if show:
        target = open_document(location.uri)
        click.echo(f"  {target.line_at(location.line)}")
