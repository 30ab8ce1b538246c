import click

from ccsnav.commands.resolve import load_document
from ccsnav.exit_codes import NotFoundError
from ccsnav.output.formatter import abbrev_kind, json_envelope, to_json
from ccsnav.resolve.extract import extract_at


@click.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.argument('line', type=click.IntRange(min=1))
@click.argument('column', type=click.IntRange(min=1))
@click.pass_context
def extract(ctx, path, line, column):
    """Show the reference under LINE:COLUMN (both 1-based) without resolving it."""
    json_mode = ctx.obj.get('json') if ctx.obj else False
    document = load_document(path)
    if line > document.line_count:
        raise click.BadParameter(f"{path} has only {document.line_count} lines", param_hint="LINE")

    match = extract_at(document.line_at(line - 1), column - 1)
    if match is None:
        if json_mode:
            click.echo(to_json(json_envelope("extract", summary={"verdict": "no reference"}, match=None)))
            return
        raise NotFoundError(f"No reference at {path}:{line}:{column}")

    if json_mode:
        click.echo(to_json(json_envelope(
            "extract",
            summary={"verdict": "match", "kind": match.kind.value},
            match={
                "raw_text": match.raw_text,
                "normalized_query": match.normalized_query,
                "kind": match.kind.value,
                "symbol_name": match.symbol_name,
                "start": match.source_range.start,
                "end": match.source_range.end,
            },
        )))
        return

    click.echo(f"{abbrev_kind(match.kind)}  {match.normalized_query}")
    click.echo(f"  symbol: {match.symbol_name}")
    click.echo(f"  text:   {match.raw_text}  (cols {match.source_range.start + 1}-{match.source_range.end})")
