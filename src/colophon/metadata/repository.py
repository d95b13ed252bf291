# ABOUTME: MetadataRepository protocol: the boundary to the external metadata store.
# ABOUTME: Returns best-effort partial results plus the list of ids that did not resolve.

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from colophon.metadata.types import Work


@dataclass(frozen=True)
class FetchResult:
    """Works resolved by one fetch call, and the requested ids that were not."""

    works: dict[str, Work] = field(default_factory=dict)
    missing: tuple[str, ...] = ()


@runtime_checkable
class MetadataRepository(Protocol):
    """Protocol for metadata sources the export engine reads from.

    fetch() must not raise for unknown ids; they belong in FetchResult.missing.
    Infrastructure problems raise colophon.errors.RepositoryUnavailable.
    """

    def fetch(
        self, work_ids: Sequence[str], publisher_id: str | None = None
    ) -> FetchResult: ...

    def list_work_ids(self, publisher_id: str) -> list[str]: ...


class InMemoryRepository:
    """Repository over a fixed set of works, for tests and embedding."""

    def __init__(self, works: Iterable[Work] = ()) -> None:
        self._works = {work.work_id: work for work in works}

    def fetch(
        self, work_ids: Sequence[str], publisher_id: str | None = None
    ) -> FetchResult:
        found: dict[str, Work] = {}
        missing: list[str] = []
        for work_id in work_ids:
            work = self._works.get(work_id)
            if work is None or (
                publisher_id is not None and work.publisher.publisher_id != publisher_id
            ):
                missing.append(work_id)
            else:
                found[work_id] = work
        return FetchResult(works=found, missing=tuple(missing))

    def list_work_ids(self, publisher_id: str) -> list[str]:
        return sorted(
            work_id
            for work_id, work in self._works.items()
            if work.publisher.publisher_id == publisher_id
        )
