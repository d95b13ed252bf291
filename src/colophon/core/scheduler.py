# ABOUTME: ExportScheduler: accepts export requests, deduplicates in-flight jobs, runs them
# ABOUTME: on bounded thread pools, and tracks status until callers acknowledge or retention ends.

import logging
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from colophon.config import ExportSettings
from colophon.core.exporter import Exporter
from colophon.core.report import ExportReport, RecordResult
from colophon.core.sink import OutputSink
from colophon.errors import ColophonError, NotFound
from colophon.formats.registry import FormatEntry, FormatRegistry
from colophon.metadata.repository import MetadataRepository

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


JobKey = tuple[str, str, tuple[str, ...]]


@dataclass(frozen=True)
class JobHandle:
    """Opaque ticket for one submission. Duplicate submissions share a job_id."""

    handle_id: str
    job_id: str


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time view of a job, safe to hand to another thread."""

    job_id: str
    status: JobStatus
    format_key: tuple[str, str]
    work_ids: tuple[str, ...]
    processed: int
    report: ExportReport | None = None
    error: Exception | None = None

    @property
    def total(self) -> int:
        return len(self.work_ids)


@dataclass
class _Job:
    job_id: str
    key: JobKey
    work_ids: tuple[str, ...]
    timestamp: datetime
    status: JobStatus = JobStatus.PENDING
    processed: int = 0
    report: ExportReport | None = None
    error: Exception | None = None
    finished_at: float | None = None
    handles: set[str] = field(default_factory=set)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    done_event: threading.Event = field(default_factory=threading.Event)

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            job_id=self.job_id,
            status=self.status,
            format_key=(self.key[0], self.key[1]),
            work_ids=self.work_ids,
            processed=self.processed,
            report=self.report,
            error=self.error,
        )


class ExportScheduler:
    """Runs export jobs concurrently while keeping at most one job per key in flight.

    A job key is (format name, version, sorted unique work ids). Submitting a
    request whose key matches a pending or running job returns a new handle on
    that job instead of starting another one. Finished jobs stay pollable
    until acknowledged or until settings.retention_seconds have passed.

    All job bookkeeping is guarded by a single lock; encoders and the
    validator never see it.
    """

    def __init__(
        self,
        registry: FormatRegistry,
        repository: MetadataRepository,
        sink: OutputSink,
        settings: ExportSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.sink = sink
        self.settings = settings or ExportSettings()
        self._clock = clock
        self._lock = threading.Lock()
        self._in_flight: dict[JobKey, _Job] = {}
        self._jobs: dict[str, _Job] = {}
        self._handles: dict[str, _Job] = {}
        self._closed = False
        self._job_pool = ThreadPoolExecutor(
            max_workers=self.settings.max_concurrent_jobs, thread_name_prefix="colophon-job"
        )
        self._record_pool = ThreadPoolExecutor(
            max_workers=self.settings.max_workers, thread_name_prefix="colophon-record"
        )
        self._io_pool = ThreadPoolExecutor(
            max_workers=self.settings.max_concurrent_jobs * 2, thread_name_prefix="colophon-io"
        )

    def __enter__(self) -> "ExportScheduler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def submit(
        self,
        work_ids: Sequence[str],
        format_name: str,
        version: str,
        *,
        timestamp: datetime | None = None,
    ) -> JobHandle:
        """Request an export of work_ids in (format_name, version).

        Duplicate ids are dropped, keeping the first occurrence. A request
        without a timestamp is stamped with the current UTC time.

        Raises:
            UnknownFormat: Before any job is created, if the format is not registered.
            RuntimeError: If the scheduler has been shut down.
        """
        entry = self.registry.entry(format_name, version)
        ids = tuple(dict.fromkeys(work_ids))
        key: JobKey = (format_name, version, tuple(sorted(ids)))
        handle_id = uuid.uuid4().hex

        with self._lock:
            if self._closed:
                raise RuntimeError("Export scheduler is shut down")
            job = self._in_flight.get(key)
            if job is None:
                job = _Job(
                    job_id=uuid.uuid4().hex,
                    key=key,
                    work_ids=ids,
                    timestamp=timestamp or datetime.now(timezone.utc),
                )
                self._in_flight[key] = job
                self._jobs[job.job_id] = job
                self._job_pool.submit(self._run, job, entry)
                logger.info(
                    "Submitted job %s: %d work(s) as %s", job.job_id, len(ids), entry.spec.label
                )
            else:
                logger.info("Joined in-flight job %s for %s", job.job_id, entry.spec.label)
                if timestamp is not None and timestamp != job.timestamp:
                    logger.warning(
                        "Job %s keeps its export timestamp %s; requested %s is ignored",
                        job.job_id, job.timestamp.isoformat(), timestamp.isoformat(),
                    )
            job.handles.add(handle_id)
            self._handles[handle_id] = job
        return JobHandle(handle_id=handle_id, job_id=job.job_id)

    def submit_publisher(
        self,
        publisher_id: str,
        format_name: str,
        version: str,
        *,
        timestamp: datetime | None = None,
    ) -> JobHandle:
        """Export every work of a publisher.

        The publisher's work ids are resolved now, so the job key is the same
        as an explicit request for those ids.

        Raises:
            UnknownFormat: If the format is not registered.
            RepositoryUnavailable: If the id listing fails.
        """
        self.registry.entry(format_name, version)
        work_ids = self.repository.list_work_ids(publisher_id)
        logger.info("Publisher %s has %d work(s)", publisher_id, len(work_ids))
        return self.submit(work_ids, format_name, version, timestamp=timestamp)

    def poll(self, handle: JobHandle) -> JobSnapshot:
        """Current state of the job behind a handle.

        Raises:
            NotFound: If the handle is unknown, acknowledged, or expired.
        """
        with self._lock:
            return self._job_for(handle).snapshot()

    def wait(self, handle: JobHandle, timeout: float | None = None) -> JobSnapshot:
        """Block until the job reaches a terminal state or timeout elapses."""
        with self._lock:
            job = self._job_for(handle)
        job.done_event.wait(timeout)
        with self._lock:
            return job.snapshot()

    def cancel(self, handle: JobHandle) -> bool:
        """Ask the job to stop. Records not yet started are reported cancelled.

        The job is shared by every handle on it, so all of them see the
        cancellation. Returns False if the job had already finished.
        """
        with self._lock:
            job = self._job_for(handle)
            if job.status.terminal:
                return False
            job.cancel_event.set()
        logger.info("Cancellation requested for job %s", job.job_id)
        return True

    def acknowledge(self, handle: JobHandle) -> None:
        """Release a handle. A finished job is dropped once no handle refers to it.

        Raises:
            NotFound: If the handle is unknown or already released.
        """
        with self._lock:
            job = self._job_for(handle)
            del self._handles[handle.handle_id]
            job.handles.discard(handle.handle_id)
            if not job.handles and job.status.terminal:
                self._jobs.pop(job.job_id, None)

    def purge_expired(self) -> int:
        """Drop finished jobs older than the retention window. Returns how many."""
        with self._lock:
            return self._purge_locked()

    def shutdown(self, wait: bool = True, *, cancel: bool = False) -> None:
        """Stop accepting jobs and release the worker pools."""
        with self._lock:
            self._closed = True
            if cancel:
                for job in self._jobs.values():
                    job.cancel_event.set()
        self._job_pool.shutdown(wait=wait)
        self._record_pool.shutdown(wait=wait)
        self._io_pool.shutdown(wait=wait)

    def _job_for(self, handle: JobHandle) -> _Job:
        # Caller holds self._lock.
        self._purge_locked()
        job = self._handles.get(handle.handle_id)
        if job is None:
            raise NotFound(handle.handle_id, kind="job handle")
        return job

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [
            job
            for job in self._jobs.values()
            if job.finished_at is not None
            and now - job.finished_at >= self.settings.retention_seconds
        ]
        for job in expired:
            del self._jobs[job.job_id]
            for handle_id in job.handles:
                self._handles.pop(handle_id, None)
            logger.debug("Purged job %s", job.job_id)
        return len(expired)

    def _record_done(self, job: _Job, result: RecordResult) -> None:
        with self._lock:
            job.processed += 1

    def _run(self, job: _Job, entry: FormatEntry) -> None:
        with self._lock:
            job.status = JobStatus.RUNNING
        exporter = Exporter(
            entry,
            self.repository,
            self.sink,
            record_pool=self._record_pool,
            io_pool=self._io_pool,
            settings=self.settings,
        )
        report = None
        error: Exception | None = None
        try:
            report = exporter.run(
                job.job_id,
                job.work_ids,
                timestamp=job.timestamp,
                cancel_event=job.cancel_event,
                on_record=lambda result: self._record_done(job, result),
            )
        except ColophonError as exc:
            logger.error("Job %s failed: %s", job.job_id, exc)
            error = exc
        except Exception as exc:
            logger.exception("Job %s failed unexpectedly", job.job_id)
            error = exc

        with self._lock:
            if error is not None:
                job.status = JobStatus.FAILED
                job.error = error
            elif report is not None and report.cancelled:
                job.status = JobStatus.CANCELLED
                job.report = report
            else:
                job.status = JobStatus.COMPLETED
                job.report = report
            job.finished_at = self._clock()
            if self._in_flight.get(job.key) is job:
                del self._in_flight[job.key]
            if not job.handles:
                self._jobs.pop(job.job_id, None)
        job.done_event.set()
        logger.info("Job %s is %s", job.job_id, job.status.value)
