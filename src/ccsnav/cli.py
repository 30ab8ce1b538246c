"""Click CLI entry point with lazy-loaded subcommands."""

import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click


# Lazy-loading command group: imports command modules only when invoked.
# This keeps aiohttp out of `extract`/`links`/`--help`.
_COMMANDS = {
    "extract":      ("ccsnav.commands.cmd_extract",      "extract"),
    "links":        ("ccsnav.commands.cmd_links",        "links"),
    "define":       ("ccsnav.commands.cmd_define",       "define"),
    "follow":       ("ccsnav.commands.cmd_links",        "follow"),
    "jump":         ("ccsnav.commands.cmd_jump",         "jump"),
    "context-expr": ("ccsnav.commands.cmd_context_expr", "context_expr"),
    "config":       ("ccsnav.commands.cmd_config",       "config"),
}

# Command categories for organized --help display
_CATEGORIES = {
    "Navigation": ["define", "jump", "follow"],
    "Reference Recognition": ["extract", "links"],
    "Server": ["context-expr", "config"],
}


class LazyGroup(click.Group):
    """A Click group that lazy-loads command modules on first access."""

    def list_commands(self, ctx):
        return sorted(_COMMANDS.keys())

    def get_command(self, ctx, cmd_name):
        if cmd_name not in _COMMANDS:
            return None
        module_path, attr_name = _COMMANDS[cmd_name]
        import importlib
        mod = importlib.import_module(module_path)
        return getattr(mod, attr_name)

    def format_help(self, ctx, formatter):
        """Categorized help display instead of flat alphabetical list."""
        self.format_usage(ctx, formatter)
        formatter.write("\n")
        if self.help:
            formatter.write(self.help + "\n\n")

        for cat_name, cmds in _CATEGORIES.items():
            formatter.write(f"  {cat_name}:\n")
            for cmd_name in cmds:
                cmd = self.get_command(ctx, cmd_name)
                if cmd is None:
                    continue
                help_text = cmd.get_short_help_str(limit=60)
                formatter.write(f"    {cmd_name:20s} {help_text}\n")
            formatter.write("\n")

        formatter.write("  Run `ccsnav <command> --help` for details on any command.\n")


@click.group(cls=LazyGroup)
@click.version_option(package_name="ccs-navigator")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('-v', '--verbose', is_flag=True, help='Log resolution diagnostics to stderr')
@click.pass_context
def cli(ctx, json_mode, verbose):
    """ccsnav: find where ObjectScript symbols are defined."""
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    ctx.obj['verbose'] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
