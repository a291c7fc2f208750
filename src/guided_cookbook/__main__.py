from guided_cookbook.cli import cli

cli()
