# ABOUTME: Public API for the Colophon work catalog database layer.
# ABOUTME: Exports connection management, the catalog repository, and document mapping.

from colophon.config import DEFAULT_DB_PATH
from colophon.db.catalog import SnapshotLoadError, WorkCatalog
from colophon.db.connection import open_catalog
from colophon.db.mapping import dict_to_work, work_to_dict

__all__ = [
    "DEFAULT_DB_PATH",
    "SnapshotLoadError",
    "WorkCatalog",
    "dict_to_work",
    "open_catalog",
    "work_to_dict",
]
