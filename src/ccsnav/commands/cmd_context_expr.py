import asyncio

import click

from ccsnav.commands.resolve import load_document, settings_for
from ccsnav.config import resolve_connection
from ccsnav.exit_codes import EXIT_ERROR, CcsNavError, NoConnectionError
from ccsnav.output.formatter import json_envelope, to_json
from ccsnav.resolve.remote import ContextExpressionClient
from ccsnav.resolve.transport import default_transport_factory


@click.command('context-expr')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.argument('line', type=click.IntRange(min=1))
@click.option('--expression', default=None, help='Expression to expand (default: the trimmed LINE text)')
@click.pass_context
def context_expr(ctx, path, line, expression):
    """Expand a context expression on LINE (1-based) via the server.

    Prints the replacement text, tab-indented, with the document's line endings.
    """
    json_mode = ctx.obj.get('json') if ctx.obj else False
    document = load_document(path)
    if line > document.line_count:
        raise click.BadParameter(f"{path} has only {document.line_count} lines", param_hint="LINE")
    expression = (expression if expression is not None else document.line_at(line - 1)).strip()

    connection = resolve_connection(document)
    if not connection.host or not connection.port:
        raise NoConnectionError()

    settings = settings_for(path)
    client = ContextExpressionClient(default_transport_factory(verify_ssl=settings.strict_ssl))
    result = asyncio.run(client.resolve(document.name, expression, connection))

    if json_mode:
        click.echo(to_json(json_envelope(
            "context-expr",
            summary={"verdict": "success" if result.ok else "failed"},
            routine=document.name,
            expression=expression,
            text_expression=result.formatted(document.eol) if result.ok else None,
            message=result.message or None,
        )))
        return

    if not result.ok:
        raise CcsNavError(result.message, EXIT_ERROR)
    click.echo(result.formatted(document.eol))
