from ccsnav.cli import cli

cli()
