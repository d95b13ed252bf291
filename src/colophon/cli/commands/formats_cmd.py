# ABOUTME: The `colophon formats` command listing every registered export format.
# ABOUTME: Renders name, version, batch limit and content type as a rich table.

import click
from rich.console import Console
from rich.table import Table

from colophon.formats.registry import default_registry

console = Console()


@click.command("formats")
def formats() -> None:
    """List the export formats this installation can produce."""
    table = Table(title="Export formats")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Batch", justify="right")
    table.add_column("Content type", style="dim")
    table.add_column("Description")

    for spec in default_registry().formats():
        batch = spec.max_batch_size()
        table.add_row(
            spec.name,
            spec.version,
            str(batch) if batch is not None else "-",
            spec.content_type,
            spec.description,
        )
    console.print(table)
