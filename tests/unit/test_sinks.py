# ABOUTME: Unit tests for the output sinks.
# ABOUTME: MemorySink bookkeeping, DirectorySink collision handling, HttpSink status mapping.

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from colophon.core.sink import (
    Delivery,
    DirectorySink,
    HttpSink,
    MemorySink,
    OutputSink,
)
from colophon.errors import TransportFailure


def _delivery(filename: str = "onix-abc-001.xml", payload: bytes = b"<ONIXMessage/>") -> Delivery:
    return Delivery(
        content_type="application/xml",
        byte_length=len(payload),
        payload=payload,
        filename=filename,
        record_count=1,
    )


class RecordingTransport(httpx.BaseTransport):
    """Fake transport that records requests and replies with a fixed response."""

    def __init__(self, response: httpx.Response | None = None) -> None:
        self._response = response or httpx.Response(201)
        self.requests: list[httpx.Request] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._response


class RaisingTransport(httpx.BaseTransport):
    def handle_request(self, request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)


class TestProtocol:
    @pytest.mark.parametrize(
        "sink",
        [MemorySink(), DirectorySink(Path(".")), HttpSink("https://example.org")],
    )
    def test_sinks_satisfy_protocol(self, sink: object) -> None:
        assert isinstance(sink, OutputSink)


class TestMemorySink:
    def test_keeps_deliveries_in_order(self) -> None:
        sink = MemorySink()
        first = sink.deliver(_delivery("a.xml", b"1"))
        second = sink.deliver(_delivery("b.xml", b"2"))
        assert first.location == "memory://0/a.xml"
        assert second.location == "memory://1/b.xml"
        assert sink.payloads() == [b"1", b"2"]


class TestDirectorySink:
    """Tests for DirectorySink."""

    def test_writes_file(self, tmp_path: Path) -> None:
        receipt = DirectorySink(tmp_path / "out").deliver(_delivery())
        written = tmp_path / "out" / "onix-abc-001.xml"
        assert receipt.location == str(written)
        assert written.read_bytes() == b"<ONIXMessage/>"

    def test_never_overwrites(self, tmp_path: Path) -> None:
        sink = DirectorySink(tmp_path)
        sink.deliver(_delivery(payload=b"first"))
        second = sink.deliver(_delivery(payload=b"second"))
        third = sink.deliver(_delivery(payload=b"third"))
        assert Path(second.location).name == "onix-abc-001_1.xml"
        assert Path(third.location).name == "onix-abc-001_2.xml"
        assert (tmp_path / "onix-abc-001.xml").read_bytes() == b"first"

    def test_leaves_no_partial_files(self, tmp_path: Path) -> None:
        sink = DirectorySink(tmp_path)
        sink.deliver(_delivery(payload=b"first"))
        sink.deliver(_delivery(payload=b"second"))
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "onix-abc-001.xml",
            "onix-abc-001_1.xml",
        ]

    def test_failed_rename_cleans_up(self, tmp_path: Path) -> None:
        """If the payload cannot be moved into place, nothing is left behind."""
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(TransportFailure, match="disk full"):
                DirectorySink(tmp_path).deliver(_delivery())
        assert list(tmp_path.iterdir()) == []

    def test_unwritable_directory_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(TransportFailure) as exc_info:
            DirectorySink(blocker / "out").deliver(_delivery())
        assert exc_info.value.location == str(blocker / "out")


class TestHttpSink:
    """Tests for HttpSink."""

    def test_posts_payload(self) -> None:
        transport = RecordingTransport(
            httpx.Response(201, headers={"Location": "https://example.org/exports/42"})
        )
        sink = HttpSink("https://example.org/exports", transport=transport)
        receipt = sink.deliver(_delivery())
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.content == b"<ONIXMessage/>"
        assert request.headers["content-type"] == "application/xml"
        assert 'filename="onix-abc-001.xml"' in request.headers["content-disposition"]
        assert receipt.location == "https://example.org/exports/42"

    def test_location_defaults_to_url(self) -> None:
        sink = HttpSink("https://example.org/exports", transport=RecordingTransport())
        assert sink.deliver(_delivery()).location == "https://example.org/exports"

    def test_extra_headers(self) -> None:
        transport = RecordingTransport()
        sink = HttpSink(
            "https://example.org/exports",
            headers={"Authorization": "Bearer token"},
            transport=transport,
        )
        sink.deliver(_delivery())
        assert transport.requests[0].headers["authorization"] == "Bearer token"

    def test_error_status_raises(self) -> None:
        sink = HttpSink(
            "https://example.org/exports", transport=RecordingTransport(httpx.Response(502))
        )
        with pytest.raises(TransportFailure, match="HTTP 502") as exc_info:
            sink.deliver(_delivery())
        assert exc_info.value.location == "https://example.org/exports"

    def test_transport_error_raises(self) -> None:
        sink = HttpSink("https://example.org/exports", transport=RaisingTransport())
        with pytest.raises(TransportFailure, match="Delivery failed"):
            sink.deliver(_delivery())

    def test_close(self) -> None:
        sink = HttpSink("https://example.org/exports", transport=RecordingTransport())
        sink.close()
        with pytest.raises(RuntimeError):
            sink.deliver(_delivery())
