# ABOUTME: Opens the SQLite work catalog, creating it on first use and upgrading older schemas.
# ABOUTME: Refuses catalogs written by a newer Colophon rather than guessing at their layout.

import logging
import sqlite3
from pathlib import Path

from colophon.config import DEFAULT_DB_PATH
from colophon.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

LATEST_SCHEMA_VERSION = max((version for version, _ in MIGRATIONS), default=1)


def schema_version(conn: sqlite3.Connection) -> int:
    """Highest applied schema version, or 0 for an empty database."""
    has_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if not has_table:
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def upgrade_schema(conn: sqlite3.Connection) -> int:
    """Bring the catalog up to LATEST_SCHEMA_VERSION and return the version reached.

    Raises:
        RuntimeError: If the catalog is newer than this version of Colophon.
    """
    current = schema_version(conn)
    if current > LATEST_SCHEMA_VERSION:
        raise RuntimeError(
            f"Catalog schema v{current} is newer than supported v{LATEST_SCHEMA_VERSION}"
        )
    if current == 0:
        conn.executescript(SCHEMA_V1)
        current = 1
        logger.info("Created work catalog schema v1")
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            current = version
            logger.info("Upgraded work catalog to schema v%d", version)
    return current


def open_catalog(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the Colophon work catalog database.

    The connection uses WAL journaling and sqlite3.Row rows. It is opened
    with check_same_thread=False because export worker threads share it;
    WorkCatalog serializes access.

    Args:
        path: Database file. Defaults to ~/.colophon/works.db; parent
            directories are created as needed.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        upgrade_schema(conn)
    except (sqlite3.Error, RuntimeError):
        conn.close()
        raise
    return conn
