# ABOUTME: Unit tests for the single-job export pipeline.
# ABOUTME: Covers partitioning, per-record isolation, ordering, cancellation, and boundary timeouts.

import threading
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime

import pytest

from colophon.config import ExportSettings
from colophon.core.exporter import Exporter, partition_ids
from colophon.core.report import (
    CANCELLED,
    FAILED,
    NOT_FOUND,
    REJECTED,
    SUCCEEDED,
    RecordResult,
)
from colophon.core.sink import Delivery, DeliveryReceipt, MemorySink
from colophon.errors import EncodingError, RepositoryUnavailable, TransportFailure
from colophon.formats.registry import FormatEntry, FormatRegistry
from colophon.metadata.repository import FetchResult, InMemoryRepository
from colophon.metadata.types import Work
from tests.fixtures.works import make_catalogue, make_minimal_work, make_work


class GatedRepository(InMemoryRepository):
    """Repository whose fetch blocks until the gate opens."""

    def __init__(self, works: Sequence[Work] = ()) -> None:
        super().__init__(works)
        self.gate = threading.Event()

    def fetch(self, work_ids: Sequence[str], publisher_id: str | None = None) -> FetchResult:
        self.gate.wait(5)
        return super().fetch(work_ids, publisher_id)


class BrokenRepository(InMemoryRepository):
    def fetch(self, work_ids: Sequence[str], publisher_id: str | None = None) -> FetchResult:
        raise RepositoryUnavailable("connection refused")


class GatedSink(MemorySink):
    """Sink whose deliveries block until the gate opens."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = threading.Event()

    def deliver(self, delivery: Delivery) -> DeliveryReceipt:
        self.gate.wait(5)
        return super().deliver(delivery)


class FailingSink:
    def deliver(self, delivery: Delivery) -> DeliveryReceipt:
        raise TransportFailure("upload rejected", location="https://example.org/upload")


@pytest.fixture
def pools() -> Iterator[tuple[ThreadPoolExecutor, ThreadPoolExecutor]]:
    record_pool = ThreadPoolExecutor(max_workers=4)
    io_pool = ThreadPoolExecutor(max_workers=2)
    yield record_pool, io_pool
    record_pool.shutdown(wait=True)
    io_pool.shutdown(wait=True)


def _exporter(
    entry: FormatEntry,
    repository,
    sink,
    pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
    settings: ExportSettings | None = None,
) -> Exporter:
    record_pool, io_pool = pools
    return Exporter(
        entry,
        repository,
        sink,
        record_pool=record_pool,
        io_pool=io_pool,
        settings=settings or ExportSettings(),
    )


class TestPartitionIds:
    """Tests for partition_ids()."""

    def test_empty_request(self) -> None:
        assert partition_ids([], 10) == []

    def test_unbounded(self) -> None:
        assert partition_ids(["a", "b", "c"], None) == [("a", "b", "c")]

    def test_chunks_keep_order(self) -> None:
        assert partition_ids(["a", "b", "c", "d", "e"], 2) == [("a", "b"), ("c", "d"), ("e",)]

    def test_exact_multiple(self) -> None:
        assert partition_ids(["a", "b", "c", "d"], 2) == [("a", "b"), ("c", "d")]


class TestExporterRun:
    """Tests for Exporter.run()."""

    def test_mixed_outcomes_in_input_order(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        works = [
            make_work(),
            make_minimal_work(),
            make_work("work-anon", contributors=()),
            make_work("work-ctl", title="Bell\x07"),
        ]
        exporter = _exporter(
            registry.entry("catalogue-record", "1"),
            InMemoryRepository(works),
            memory_sink,
            pools,
        )
        ids = ["work-001", "ghost", "work-min", "work-anon", "work-ctl"]
        report = exporter.run(
            "job-1234567890", ids, timestamp=timestamp, cancel_event=threading.Event()
        )

        assert [r.work_id for r in report.records] == ids
        assert [r.status for r in report.records] == [
            SUCCEEDED,
            NOT_FOUND,
            SUCCEEDED,
            REJECTED,
            FAILED,
        ]
        assert report.result_for("work-anon").violations[0].field == "contributors"
        error = report.result_for("work-ctl").error
        assert isinstance(error, EncodingError)
        assert error.work_id == "work-ctl"

    def test_delivers_one_payload_per_partition(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        exporter = _exporter(
            registry.entry("catalogue-record", "1"),
            InMemoryRepository([make_work(), make_minimal_work()]),
            memory_sink,
            pools,
        )
        report = exporter.run(
            "abcdef0123456789", ["work-001", "work-min"],
            timestamp=timestamp, cancel_event=threading.Event(),
        )

        [partition] = report.partitions
        assert partition.record_count == 2
        assert partition.filename == "catalogue-record-abcdef01-001.mrk"
        assert partition.location == "memory://0/catalogue-record-abcdef01-001.mrk"
        [delivery] = memory_sink.deliveries
        assert delivery.content_type == "text/plain"
        assert delivery.byte_length == len(delivery.payload)
        assert delivery.payload.count(b"=LDR  ") == 2

    def test_batch_limit_splits_deliveries(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        works = make_catalogue(3)
        exporter = _exporter(
            registry.entry("doideposit", "crossref-5.3.1"),
            InMemoryRepository(works),
            memory_sink,
            pools,
        )
        report = exporter.run(
            "job-deposit", [w.work_id for w in works],
            timestamp=timestamp, cancel_event=threading.Event(),
        )

        assert report.succeeded == 3
        assert [p.index for p in report.partitions] == [0, 1, 2]
        assert [r.partition for r in report.records] == [0, 1, 2]
        assert len(memory_sink.deliveries) == 3
        assert all(d.record_count == 1 for d in memory_sink.deliveries)

    def test_partitioned_results_match_unbounded_run(
        self,
        registry: FormatRegistry,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        works = make_catalogue(7) + [make_work("work-notitle", title="")]
        ids = [w.work_id for w in works] + ["ghost"]
        entry = registry.entry("csv", "1")
        bounded = FormatEntry(spec=replace(entry.spec, batch_limit=3), encoder=entry.encoder)

        def outcomes(selected: FormatEntry) -> list[tuple[str, str]]:
            report = _exporter(selected, InMemoryRepository(works), MemorySink(), pools).run(
                "job", ids, timestamp=timestamp, cancel_event=threading.Event()
            )
            return [(r.work_id, r.status) for r in report.records]

        assert outcomes(bounded) == outcomes(entry)
        assert len(partition_ids(ids, 3)) == 3

    def test_partition_without_records_is_not_delivered(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository([]), memory_sink, pools
        )
        report = exporter.run(
            "job", ["ghost"], timestamp=timestamp, cancel_event=threading.Event()
        )

        assert report.not_found == 1
        assert not report.partitions[0].delivered
        assert memory_sink.deliveries == []

    def test_on_record_sees_every_record(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        seen: list[RecordResult] = []
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository([make_work()]), memory_sink, pools
        )
        exporter.run(
            "job", ["work-001", "ghost"],
            timestamp=timestamp, cancel_event=threading.Event(), on_record=seen.append,
        )
        assert sorted(r.work_id for r in seen) == ["ghost", "work-001"]

    def test_publisher_scope(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository([make_work()]), memory_sink, pools
        )
        report = exporter.run(
            "job", ["work-001"],
            timestamp=timestamp, cancel_event=threading.Event(), publisher_id="pub-punctum",
        )
        assert report.result_for("work-001").status == NOT_FOUND

    def test_cancelled_before_start(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        cancel = threading.Event()
        cancel.set()
        works = make_catalogue(2)
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository(works), memory_sink, pools
        )
        report = exporter.run(
            "job", [w.work_id for w in works], timestamp=timestamp, cancel_event=cancel
        )

        assert report.cancelled == 2
        assert memory_sink.deliveries == []

    def test_cancel_between_partitions(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        cancel = threading.Event()
        works = make_catalogue(3)

        def cancel_after_first(result: RecordResult) -> None:
            cancel.set()

        exporter = _exporter(
            registry.entry("doideposit", "crossref-5.3.1"),
            InMemoryRepository(works),
            memory_sink,
            pools,
        )
        report = exporter.run(
            "job", [w.work_id for w in works],
            timestamp=timestamp, cancel_event=cancel, on_record=cancel_after_first,
        )

        assert [r.status for r in report.records] == [SUCCEEDED, CANCELLED, CANCELLED]
        assert len(memory_sink.deliveries) == 1

    def test_repository_failure_propagates(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        exporter = _exporter(
            registry.entry("json", "1"), BrokenRepository(), memory_sink, pools
        )
        with pytest.raises(RepositoryUnavailable, match="connection refused"):
            exporter.run("job", ["work-001"], timestamp=timestamp, cancel_event=threading.Event())

    def test_fetch_timeout(
        self,
        registry: FormatRegistry,
        memory_sink: MemorySink,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        repository = GatedRepository([make_work()])
        exporter = _exporter(
            registry.entry("json", "1"), repository, memory_sink, pools,
            settings=ExportSettings(fetch_timeout=0.05),
        )
        try:
            with pytest.raises(RepositoryUnavailable, match="timed out"):
                exporter.run(
                    "job", ["work-001"], timestamp=timestamp, cancel_event=threading.Event()
                )
        finally:
            repository.gate.set()

    def test_transport_failure_propagates(
        self,
        registry: FormatRegistry,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository([make_work()]), FailingSink(), pools
        )
        with pytest.raises(TransportFailure) as exc_info:
            exporter.run("job", ["work-001"], timestamp=timestamp, cancel_event=threading.Event())
        assert exc_info.value.location == "https://example.org/upload"

    def test_delivery_timeout(
        self,
        registry: FormatRegistry,
        pools: tuple[ThreadPoolExecutor, ThreadPoolExecutor],
        timestamp: datetime,
    ) -> None:
        sink = GatedSink()
        exporter = _exporter(
            registry.entry("json", "1"), InMemoryRepository([make_work()]), sink, pools,
            settings=ExportSettings(delivery_timeout=0.05),
        )
        try:
            with pytest.raises(TransportFailure, match="timed out"):
                exporter.run(
                    "job", ["work-001"], timestamp=timestamp, cancel_event=threading.Event()
                )
        finally:
            sink.gate.set()
