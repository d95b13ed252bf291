# ABOUTME: The `colophon validate` command: checks works against a format without exporting.
# ABOUTME: Prints every violation found; exits 1 if any work is invalid or missing.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from colophon.cli.options import (
    db_option,
    format_name_option,
    format_version_option,
    graphql_option,
    graphql_token_option,
    open_repository,
)
from colophon.core.validator import validate
from colophon.errors import RepositoryUnavailable, UnknownFormat
from colophon.formats.registry import default_registry

console = Console()


@click.command("validate")
@click.argument("work_ids", nargs=-1, required=True)
@format_name_option
@format_version_option
@db_option
@graphql_option
@graphql_token_option
def validate_works(
    work_ids: tuple[str, ...],
    format_name: str,
    format_version: str,
    db_path: Path | None,
    graphql_endpoint: str | None,
    graphql_token: str | None,
) -> None:
    """Check WORK_IDS against a format's rules."""
    try:
        spec = default_registry().resolve(format_name, format_version)
    except UnknownFormat as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    repository, resource = open_repository(db_path, graphql_endpoint, graphql_token)
    try:
        result = repository.fetch(list(dict.fromkeys(work_ids)))
    except RepositoryUnavailable as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc
    finally:
        resource.close()

    table = Table(title=f"Validation against {spec.label}")
    table.add_column("Work", style="bold")
    table.add_column("Code")
    table.add_column("Field")
    table.add_column("Message")

    invalid = 0
    for work_id in dict.fromkeys(work_ids):
        work = result.works.get(work_id)
        if work is None:
            invalid += 1
            table.add_row(work_id, "[red]not_found[/red]", "", "No such work")
            continue
        report = validate(work, spec)
        if report.is_valid:
            table.add_row(work_id, "[green]ok[/green]", "", "")
            continue
        invalid += 1
        for violation in report.violations:
            table.add_row(work_id, violation.code, violation.field, violation.message)

    console.print(table)
    if invalid:
        total = len(set(work_ids))
        console.print(f"[yellow]{invalid} of {total} work(s) cannot be exported.[/yellow]")
        raise SystemExit(1)
