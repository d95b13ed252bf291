# ABOUTME: The `colophon load` command for ingesting work snapshots into the local catalog.
# ABOUTME: Reads a JSON file of work documents and upserts each one by work id.

from pathlib import Path

import click
from rich.console import Console

from colophon.cli.options import db_option
from colophon.config import DEFAULT_DB_PATH
from colophon.db.catalog import SnapshotLoadError, WorkCatalog
from colophon.db.connection import open_catalog

console = Console()


@click.command("load")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@db_option
def load(snapshot: Path, db_path: Path | None) -> None:
    """Load a JSON snapshot of works into the catalog."""
    conn = open_catalog(db_path or DEFAULT_DB_PATH)
    try:
        catalog = WorkCatalog(conn)
        try:
            loaded = catalog.load_snapshot(snapshot)
        except SnapshotLoadError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc
        console.print(
            f"Loaded [bold]{loaded}[/bold] work(s); catalog holds {catalog.count()}."
        )
    finally:
        conn.close()
