# ABOUTME: SQLite-backed metadata repository holding work snapshots as JSON documents.
# ABOUTME: Loads repository snapshots and serves them through the MetadataRepository contract.

import json
import logging
import sqlite3
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

from colophon.db.mapping import dict_to_work, work_to_dict
from colophon.errors import RepositoryUnavailable
from colophon.metadata.repository import FetchResult
from colophon.metadata.types import Work

logger = logging.getLogger(__name__)


class SnapshotLoadError(Exception):
    """Raised when a snapshot file cannot be read or parsed."""


class WorkCatalog:
    """Wraps a sqlite3 connection and implements MetadataRepository.

    Works are stored whole; the catalog never interprets the document beyond
    the work id, publisher id and title columns used for lookup and listing.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def put_work(self, work: Work, source: str | None = None) -> None:
        """Insert or replace the snapshot of a work."""
        document = json.dumps(work_to_dict(work), sort_keys=True)
        with self._lock:
            self._conn.execute(
                "INSERT INTO works (work_id, publisher_id, title, document, source) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(work_id) DO UPDATE SET "
                "publisher_id = excluded.publisher_id, title = excluded.title, "
                "document = excluded.document, source = excluded.source, "
                "date_loaded = strftime('%Y-%m-%dT%H:%M:%S', 'now')",
                (work.work_id, work.publisher.publisher_id, work.title, document, source),
            )
            self._conn.commit()

    def load_snapshot(self, path: Path) -> int:
        """Load a JSON snapshot file (a list of work documents) into the catalog.

        Returns:
            Number of works loaded.

        Raises:
            SnapshotLoadError: If the file is unreadable or a document is malformed.
        """
        try:
            documents = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SnapshotLoadError(f"Failed to read snapshot: {path}: {exc}") from exc

        if isinstance(documents, dict):
            documents = [documents]

        works: list[Work] = []
        for index, document in enumerate(documents):
            try:
                works.append(dict_to_work(document))
            except (KeyError, TypeError, ValueError) as exc:
                raise SnapshotLoadError(
                    f"Malformed work document #{index} in {path}: {exc}"
                ) from exc

        for work in works:
            self.put_work(work, source=str(path))
        logger.info("Loaded %d work(s) from %s", len(works), path)
        return len(works)

    def get_work(self, work_id: str) -> Work | None:
        """Retrieve one work snapshot by id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT document FROM works WHERE work_id = ?", (work_id,)
            ).fetchone()
        return dict_to_work(json.loads(row["document"])) if row else None

    def count(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM works").fetchone()[0]

    def fetch(
        self, work_ids: Sequence[str], publisher_id: str | None = None
    ) -> FetchResult:
        """Resolve work ids to snapshots; unknown ids go to FetchResult.missing."""
        found: dict[str, Work] = {}
        missing: list[str] = []
        try:
            for work_id in work_ids:
                with self._lock:
                    row = self._conn.execute(
                        "SELECT publisher_id, document FROM works WHERE work_id = ?",
                        (work_id,),
                    ).fetchone()
                if row is None or (
                    publisher_id is not None and row["publisher_id"] != publisher_id
                ):
                    missing.append(work_id)
                    continue
                found[work_id] = dict_to_work(json.loads(row["document"]))
        except sqlite3.Error as exc:
            raise RepositoryUnavailable(f"Catalog query failed: {exc}") from exc
        return FetchResult(works=found, missing=tuple(missing))

    def list_work_ids(self, publisher_id: str) -> list[str]:
        """Return the ids of a publisher's works, ordered by title then id."""
        try:
            with self._lock:
                cursor = self._conn.execute(
                    "SELECT work_id FROM works WHERE publisher_id = ? ORDER BY title, work_id",
                    (publisher_id,),
                )
                return [row["work_id"] for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise RepositoryUnavailable(f"Catalog query failed: {exc}") from exc

    def put_works(self, works: Iterable[Work]) -> None:
        for work in works:
            self.put_work(work)
