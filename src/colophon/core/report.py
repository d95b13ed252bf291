# ABOUTME: Value objects describing the outcome of an export: per record, per partition, per job.
# ABOUTME: Reports are immutable and serialize to plain dicts for machine-readable output.

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from colophon.core.validator import Violation
from colophon.errors import ColophonError

SUCCEEDED = "succeeded"
REJECTED = "rejected"
FAILED = "failed"
NOT_FOUND = "not_found"
CANCELLED = "cancelled"

RECORD_STATUSES = (SUCCEEDED, REJECTED, FAILED, NOT_FOUND, CANCELLED)


@dataclass(frozen=True)
class RecordResult:
    """What happened to one requested work id.

    rejected records carry violations; failed records carry the encoding
    error. partition is the index of the payload the record belongs to.
    """

    work_id: str
    status: str
    partition: int
    violations: tuple[Violation, ...] = ()
    error: ColophonError | None = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "work_id": self.work_id,
            "status": self.status,
            "partition": self.partition,
        }
        if self.violations:
            data["violations"] = [v.to_dict() for v in self.violations]
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass(frozen=True)
class PartitionOutput:
    """One sub-batch and, when it produced records, its delivered payload."""

    index: int
    work_ids: tuple[str, ...]
    record_count: int = 0
    byte_length: int = 0
    filename: str | None = None
    location: str | None = None

    @property
    def delivered(self) -> bool:
        return self.location is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "work_ids": list(self.work_ids),
            "record_count": self.record_count,
            "byte_length": self.byte_length,
            "filename": self.filename,
            "location": self.location,
        }


@dataclass(frozen=True)
class ExportReport:
    """Outcome of a completed export job.

    records keep the order of the requested ids (duplicates removed).
    """

    job_id: str
    format_key: tuple[str, str]
    timestamp: datetime
    records: tuple[RecordResult, ...]
    partitions: tuple[PartitionOutput, ...]

    def _count(self, status: str) -> int:
        return sum(1 for r in self.records if r.status == status)

    @property
    def requested(self) -> int:
        return len(self.records)

    @property
    def succeeded(self) -> int:
        return self._count(SUCCEEDED)

    @property
    def rejected(self) -> int:
        return self._count(REJECTED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def not_found(self) -> int:
        return self._count(NOT_FOUND)

    @property
    def cancelled(self) -> int:
        return self._count(CANCELLED)

    @property
    def complete_success(self) -> bool:
        return self.succeeded == self.requested

    def result_for(self, work_id: str) -> RecordResult:
        for record in self.records:
            if record.work_id == work_id:
                return record
        raise KeyError(work_id)

    def counts(self) -> dict[str, int]:
        return {
            "requested": self.requested,
            SUCCEEDED: self.succeeded,
            REJECTED: self.rejected,
            FAILED: self.failed,
            NOT_FOUND: self.not_found,
            CANCELLED: self.cancelled,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "format": {"name": self.format_key[0], "version": self.format_key[1]},
            "timestamp": self.timestamp.isoformat(),
            "counts": self.counts(),
            "records": [r.to_dict() for r in self.records],
            "partitions": [p.to_dict() for p in self.partitions],
        }
