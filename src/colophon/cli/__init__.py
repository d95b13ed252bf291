# ABOUTME: CLI package for Colophon, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from colophon.cli.commands import export_cmd, formats_cmd, load_cmd, validate_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="colophon")
@click.option("-v", "--verbose", is_flag=True, help="Log export progress to stderr.")
def cli(verbose: bool) -> None:
    """Colophon - export book metadata to catalogue, trade, and registry formats."""
    _configure_logging(verbose)


cli.add_command(formats_cmd.formats)
cli.add_command(load_cmd.load)
cli.add_command(validate_cmd.validate_works)
cli.add_command(export_cmd.export)
