# ABOUTME: Shared Click options for Colophon CLI commands.
# ABOUTME: Provides --db, GraphQL source options and --format/--version, plus repository choice.

import sqlite3
from pathlib import Path

import click

from colophon.config import DEFAULT_DB_PATH
from colophon.db.catalog import WorkCatalog
from colophon.db.connection import open_catalog
from colophon.metadata.graphql import GraphQLRepository
from colophon.metadata.http import ColophonHttpClient
from colophon.metadata.repository import MetadataRepository

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to work catalog database (default: {DEFAULT_DB_PATH})",
)

graphql_option = click.option(
    "--graphql-endpoint",
    "graphql_endpoint",
    envvar="COLOPHON_GRAPHQL_ENDPOINT",
    default=None,
    help="Read works from this GraphQL API instead of the local catalog.",
)

graphql_token_option = click.option(
    "--graphql-token",
    "graphql_token",
    envvar="COLOPHON_GRAPHQL_TOKEN",
    default=None,
    help="Bearer token for the GraphQL API.",
)

format_name_option = click.option(
    "--format", "-f", "format_name", required=True, help="Target format name, e.g. onix."
)

format_version_option = click.option(
    "--version", "format_version", required=True, help="Target format version, e.g. 3.0."
)


def open_repository(
    db_path: Path | None, graphql_endpoint: str | None, graphql_token: str | None = None
) -> tuple[MetadataRepository, sqlite3.Connection | ColophonHttpClient]:
    """Pick the metadata source for a command.

    Returns the repository and the resource behind it (catalog connection or
    HTTP client), which the caller must close.
    """
    if graphql_endpoint:
        client = ColophonHttpClient(token=graphql_token)
        return GraphQLRepository(client, graphql_endpoint), client
    conn = open_catalog(db_path or DEFAULT_DB_PATH)
    return WorkCatalog(conn), conn
