# ABOUTME: SQL DDL statements for the Colophon work snapshot catalog.
# ABOUTME: Defines the works table, publisher index, and schema versioning.

SCHEMA_V1 = """
-- One JSON document per work, as fetched from the metadata repository
CREATE TABLE works (
    work_id       TEXT PRIMARY KEY,
    publisher_id  TEXT NOT NULL,
    title         TEXT NOT NULL,
    document      TEXT NOT NULL,
    date_loaded   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE INDEX idx_works_publisher ON works(publisher_id);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# Migration from v1 to v2: record which snapshot file a work was loaded from.
MIGRATION_V2 = """
ALTER TABLE works ADD COLUMN source TEXT;

INSERT INTO schema_version (version) VALUES (2);
"""

# Ordered list of (target_version, sql) pairs applied by open_catalog().
MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2),
]
