# ABOUTME: The `colophon export` command: runs one export job and writes payloads to a directory.
# ABOUTME: Exits 1 when the job fails as a whole; partial record failures are reported, exit 0.

import dataclasses
import json
from datetime import datetime
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
from colophon.config import ExportSettings
from colophon.core.report import SUCCEEDED, ExportReport
from colophon.core.scheduler import ExportScheduler, JobStatus
from colophon.core.sink import DirectorySink
from colophon.errors import RepositoryUnavailable, UnknownFormat
from colophon.formats.registry import default_registry

console = Console()


def _print_report(report: ExportReport) -> None:
    counts = report.counts()
    console.print(
        f"[bold]{counts['requested']}[/bold] requested: "
        f"[green]{counts['succeeded']} succeeded[/green], "
        f"[yellow]{counts['rejected']} rejected[/yellow], "
        f"[red]{counts['failed']} failed[/red], "
        f"{counts['not_found']} not found, {counts['cancelled']} cancelled"
    )

    problems = [r for r in report.records if r.status != SUCCEEDED]
    if problems:
        table = Table(title="Records not exported")
        table.add_column("Work", style="bold")
        table.add_column("Status")
        table.add_column("Detail")
        for record in problems:
            if record.violations:
                detail = "; ".join(v.message for v in record.violations)
            elif record.error is not None:
                detail = str(record.error)
            else:
                detail = ""
            table.add_row(record.work_id, record.status, detail)
        console.print(table)

    for partition in report.partitions:
        if partition.delivered:
            console.print(
                f"  [dim]Partition {partition.index + 1}:[/dim] "
                f"{partition.record_count} record(s) -> {partition.location}"
            )


@click.command("export")
@click.argument("work_ids", nargs=-1)
@format_name_option
@format_version_option
@click.option("--publisher", "publisher_id", default=None, help="Export every work of a publisher.")
@click.option(
    "--timestamp",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"]),
    default=None,
    help="Export timestamp (UTC) for headers. Defaults to now.",
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory to write payloads to.",
)
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Encoding threads.")
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the job report as JSON to this file.",
)
@db_option
@graphql_option
@graphql_token_option
def export(
    work_ids: tuple[str, ...],
    format_name: str,
    format_version: str,
    publisher_id: str | None,
    timestamp: datetime | None,
    output_dir: Path,
    workers: int | None,
    report_path: Path | None,
    db_path: Path | None,
    graphql_endpoint: str | None,
    graphql_token: str | None,
) -> None:
    """Export WORK_IDS (or a whole --publisher) in a target format."""
    if not work_ids and not publisher_id:
        raise click.UsageError("Give work ids or --publisher.")

    settings = ExportSettings.from_env()
    if workers is not None:
        settings = dataclasses.replace(settings, max_workers=workers)

    repository, resource = open_repository(db_path, graphql_endpoint, graphql_token)
    try:
        with ExportScheduler(
            default_registry(), repository, DirectorySink(output_dir), settings
        ) as scheduler:
            try:
                if publisher_id:
                    handle = scheduler.submit_publisher(
                        publisher_id, format_name, format_version, timestamp=timestamp
                    )
                else:
                    handle = scheduler.submit(
                        work_ids, format_name, format_version, timestamp=timestamp
                    )
            except (UnknownFormat, RepositoryUnavailable) as exc:
                console.print(f"[red]Error:[/red] {exc}")
                raise SystemExit(1) from exc
            snapshot = scheduler.wait(handle)
    finally:
        resource.close()

    if snapshot.status is JobStatus.FAILED:
        console.print(f"[red]Export failed:[/red] {snapshot.error}")
        raise SystemExit(1)

    report = snapshot.report
    _print_report(report)
    if report_path is not None:
        report_path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    if snapshot.status is JobStatus.CANCELLED:
        raise SystemExit(1)
