# ABOUTME: OutputSink protocol and reference sinks that receive finished export payloads.
# ABOUTME: MemorySink for tests, DirectorySink for local files, HttpSink for POSTing to a service.

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from colophon.errors import TransportFailure

logger = logging.getLogger(__name__)

_MAX_COLLISION_ATTEMPTS = 10_000


@dataclass(frozen=True)
class Delivery:
    """One assembled payload plus the metadata a transport needs to ship it."""

    content_type: str
    byte_length: int
    payload: bytes
    filename: str
    record_count: int


@dataclass(frozen=True)
class DeliveryReceipt:
    location: str


@runtime_checkable
class OutputSink(Protocol):
    """Destination for export payloads.

    deliver() raises TransportFailure when the payload could not be handed
    over. Sinks do not retry; callers decide whether to resubmit.
    """

    def deliver(self, delivery: Delivery) -> DeliveryReceipt: ...


class MemorySink:
    """Keeps every delivery in a list. Safe to share between jobs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._deliveries: list[Delivery] = []

    def deliver(self, delivery: Delivery) -> DeliveryReceipt:
        with self._lock:
            self._deliveries.append(delivery)
            index = len(self._deliveries) - 1
        return DeliveryReceipt(location=f"memory://{index}/{delivery.filename}")

    @property
    def deliveries(self) -> list[Delivery]:
        with self._lock:
            return list(self._deliveries)

    def payloads(self) -> list[bytes]:
        return [d.payload for d in self.deliveries]


def _resolve_collision(output_path: Path) -> Path:
    """Find a non-colliding filename by appending _1, _2, etc."""
    stem = output_path.stem
    suffix = output_path.suffix
    parent = output_path.parent
    for counter in range(1, _MAX_COLLISION_ATTEMPTS + 1):
        candidate = parent / f"{stem}_{counter}{suffix}"
        if not candidate.exists():
            return candidate
    raise OSError(
        f"Could not find a non-colliding filename after "
        f"{_MAX_COLLISION_ATTEMPTS} attempts: {output_path}"
    )


class DirectorySink:
    """Writes each payload to a file in a directory, never overwriting.

    An existing file with the same name gets a numeric suffix (_1, _2, ...).
    Payloads are written to a hidden ".part" file first and renamed into
    place, so a visible file is always complete. A write the exporter has
    already given up on may still land; the job's status is what counts.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._lock = threading.Lock()

    def deliver(self, delivery: Delivery) -> DeliveryReceipt:
        part: Path | None = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{delivery.filename}.", suffix=".part"
            )
            part = Path(name)
            with os.fdopen(fd, "wb") as handle:
                handle.write(delivery.payload)
            # Name selection and the rename must not interleave between jobs.
            with self._lock:
                dest = self.directory / delivery.filename
                if dest.exists():
                    dest = _resolve_collision(dest)
                part.replace(dest)
            part = None
        except OSError as exc:
            logger.error("Could not write %s: %s", delivery.filename, exc)
            raise TransportFailure(
                f"Could not write {delivery.filename}: {exc}", location=str(self.directory)
            ) from exc
        finally:
            if part is not None:
                part.unlink(missing_ok=True)
        logger.debug("Wrote %d bytes to %s", delivery.byte_length, dest)
        return DeliveryReceipt(location=str(dest))


class HttpSink:
    """POSTs each payload to an HTTP endpoint.

    Any transport error or non-2xx response is a TransportFailure. The
    receipt location is the response's Location header when present.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 60.0,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        client_kwargs: dict = {
            "timeout": timeout,
            "headers": {"User-Agent": "colophon/0.1.0", **(headers or {})},
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)

    def deliver(self, delivery: Delivery) -> DeliveryReceipt:
        try:
            response = self._client.post(
                self.url,
                content=delivery.payload,
                headers={
                    "Content-Type": delivery.content_type,
                    "Content-Disposition": f'attachment; filename="{delivery.filename}"',
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Delivery to %s failed: %s", self.url, exc)
            raise TransportFailure(f"Delivery failed: {exc}", location=self.url) from exc

        if not response.is_success:
            logger.error("Delivery to %s returned HTTP %d", self.url, response.status_code)
            raise TransportFailure(
                f"Delivery returned HTTP {response.status_code}", location=self.url
            )
        return DeliveryReceipt(location=response.headers.get("Location", self.url))

    def close(self) -> None:
        self._client.close()
