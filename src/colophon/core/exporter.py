# ABOUTME: Runs one export job: partition, fetch, validate, encode, assemble, deliver.
# ABOUTME: Record problems become RecordResults; repository and transport problems are raised.

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, Future
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import datetime

from colophon.config import ExportSettings
from colophon.core.report import (
    CANCELLED,
    FAILED,
    NOT_FOUND,
    REJECTED,
    SUCCEEDED,
    ExportReport,
    PartitionOutput,
    RecordResult,
)
from colophon.core.sink import Delivery, OutputSink
from colophon.core.validator import validate
from colophon.errors import (
    EncodingError,
    RepositoryUnavailable,
    TransportFailure,
    UnmappedVocabulary,
)
from colophon.formats.registry import FormatEntry
from colophon.formats.spec import FormatSpecification
from colophon.metadata.repository import FetchResult, MetadataRepository
from colophon.metadata.types import Work

logger = logging.getLogger(__name__)


def partition_ids(work_ids: Sequence[str], max_batch_size: int | None) -> list[tuple[str, ...]]:
    """Split ids into consecutive chunks of at most max_batch_size, in input order.

    An unbounded format (None) gets one partition; an empty request gets none.
    """
    if not work_ids:
        return []
    if max_batch_size is None:
        return [tuple(work_ids)]
    return [
        tuple(work_ids[start:start + max_batch_size])
        for start in range(0, len(work_ids), max_batch_size)
    ]


@dataclass(frozen=True)
class _Outcome:
    result: RecordResult
    fragment: bytes | None = None


class Exporter:
    """Executes the pipeline for one (format, work ids) request.

    Validation and encoding fan out on record_pool. Repository fetches and
    sink deliveries run on io_pool so their timeouts can be enforced without
    cancelling the encoding work.
    """

    def __init__(
        self,
        entry: FormatEntry,
        repository: MetadataRepository,
        sink: OutputSink,
        *,
        record_pool: Executor,
        io_pool: Executor,
        settings: ExportSettings,
    ) -> None:
        self.entry = entry
        self.repository = repository
        self.sink = sink
        self._record_pool = record_pool
        self._io_pool = io_pool
        self._settings = settings

    @property
    def spec(self) -> FormatSpecification:
        return self.entry.spec

    def run(
        self,
        job_id: str,
        work_ids: Sequence[str],
        *,
        timestamp: datetime,
        cancel_event: threading.Event,
        publisher_id: str | None = None,
        on_record: Callable[[RecordResult], None] | None = None,
    ) -> ExportReport:
        """Export the given ids and return the report.

        Raises:
            RepositoryUnavailable: If a fetch fails or exceeds fetch_timeout.
            TransportFailure: If a delivery fails or exceeds delivery_timeout.
        """
        records: list[RecordResult] = []
        partitions: list[PartitionOutput] = []
        chunks = partition_ids(work_ids, self.spec.max_batch_size())
        logger.info(
            "Job %s: %d work(s) for %s in %d partition(s)",
            job_id, len(work_ids), self.spec.label, len(chunks),
        )

        for index, chunk in enumerate(chunks):
            if cancel_event.is_set():
                cancelled = [RecordResult(work_id, CANCELLED, index) for work_id in chunk]
                records.extend(cancelled)
                partitions.append(PartitionOutput(index=index, work_ids=chunk))
                for result in cancelled:
                    self._notify(on_record, result)
                continue

            fetched = self._fetch(chunk, publisher_id)
            outcomes = self._process(chunk, fetched, index, cancel_event, on_record)
            records.extend(outcome.result for outcome in outcomes)
            fragments = [o.fragment for o in outcomes if o.fragment is not None]
            partitions.append(self._deliver(job_id, index, chunk, fragments, timestamp))

        report = ExportReport(
            job_id=job_id,
            format_key=self.spec.key,
            timestamp=timestamp,
            records=tuple(records),
            partitions=tuple(partitions),
        )
        logger.info("Job %s finished: %s", job_id, report.counts())
        return report

    def _fetch(self, chunk: tuple[str, ...], publisher_id: str | None) -> FetchResult:
        future = self._io_pool.submit(self.repository.fetch, list(chunk), publisher_id)
        try:
            return future.result(timeout=self._settings.fetch_timeout)
        except FuturesTimeout as exc:
            future.cancel()
            logger.error("Repository fetch timed out after %.1fs", self._settings.fetch_timeout)
            raise RepositoryUnavailable(
                f"Repository fetch timed out after {self._settings.fetch_timeout}s"
            ) from exc

    def _process(
        self,
        chunk: tuple[str, ...],
        fetched: FetchResult,
        index: int,
        cancel_event: threading.Event,
        on_record: Callable[[RecordResult], None] | None,
    ) -> list[_Outcome]:
        pending: list[_Outcome | Future] = []
        for work_id in chunk:
            work = fetched.works.get(work_id)
            if work is None:
                pending.append(_Outcome(RecordResult(work_id, NOT_FOUND, index)))
            elif cancel_event.is_set():
                pending.append(_Outcome(RecordResult(work_id, CANCELLED, index)))
            else:
                pending.append(
                    self._record_pool.submit(self._encode_one, work, index, cancel_event)
                )

        outcomes = []
        for item in pending:
            outcome = item.result() if isinstance(item, Future) else item
            self._notify(on_record, outcome.result)
            outcomes.append(outcome)
        return outcomes

    def _encode_one(self, work: Work, index: int, cancel_event: threading.Event) -> _Outcome:
        # Tasks still queued when the job is cancelled never start encoding.
        if cancel_event.is_set():
            return _Outcome(RecordResult(work.work_id, CANCELLED, index))

        report = validate(work, self.spec)
        if not report.is_valid:
            logger.warning(
                "Rejected %s for %s: %s", work.work_id, self.spec.label, ", ".join(report.codes())
            )
            return _Outcome(
                RecordResult(work.work_id, REJECTED, index, violations=report.violations)
            )
        try:
            fragment = self.entry.encoder.encode(work, self.spec)
        except (EncodingError, UnmappedVocabulary) as exc:
            if exc.work_id is None:
                exc.work_id = work.work_id
            logger.warning("Could not encode %s as %s: %s", work.work_id, self.spec.label, exc)
            return _Outcome(RecordResult(work.work_id, FAILED, index, error=exc))
        return _Outcome(RecordResult(work.work_id, SUCCEEDED, index), fragment=fragment)

    def _deliver(
        self,
        job_id: str,
        index: int,
        chunk: tuple[str, ...],
        fragments: list[bytes],
        timestamp: datetime,
    ) -> PartitionOutput:
        if not fragments:
            logger.info("Job %s partition %d has no encodable records", job_id, index)
            return PartitionOutput(index=index, work_ids=chunk)

        payload = self.entry.encoder.assemble(fragments, self.spec, timestamp=timestamp)
        filename = f"{self.spec.name}-{job_id[:8]}-{index + 1:03d}.{self.spec.file_extension}"
        delivery = Delivery(
            content_type=self.spec.content_type,
            byte_length=len(payload),
            payload=payload,
            filename=filename,
            record_count=len(fragments),
        )
        future = self._io_pool.submit(self.sink.deliver, delivery)
        try:
            receipt = future.result(timeout=self._settings.delivery_timeout)
        except FuturesTimeout as exc:
            # A sink call already running is not interrupted and may still deliver.
            # The partition is reported as failed either way.
            future.cancel()
            logger.error("Delivery of %s timed out", filename)
            raise TransportFailure(
                f"Delivery timed out after {self._settings.delivery_timeout}s"
            ) from exc
        logger.info("Delivered %s (%d bytes) to %s", filename, len(payload), receipt.location)
        return PartitionOutput(
            index=index,
            work_ids=chunk,
            record_count=len(fragments),
            byte_length=len(payload),
            filename=filename,
            location=receipt.location,
        )

    @staticmethod
    def _notify(
        on_record: Callable[[RecordResult], None] | None, result: RecordResult
    ) -> None:
        if on_record is not None:
            on_record(result)
