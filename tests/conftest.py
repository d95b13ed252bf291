# ABOUTME: Shared pytest fixtures for Colophon tests.
# ABOUTME: Provides sample works, the bundled format registry, and an in-memory sink.

from datetime import datetime, timezone
from pathlib import Path

import pytest

from colophon.core.sink import MemorySink
from colophon.formats.registry import FormatRegistry, default_registry
from colophon.metadata.repository import InMemoryRepository
from colophon.metadata.types import Work
from tests.fixtures.works import make_minimal_work, make_work


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def registry() -> FormatRegistry:
    """The frozen registry of bundled formats."""
    return default_registry()


@pytest.fixture
def sample_work() -> Work:
    """A complete monograph that every bundled format accepts."""
    return make_work()


@pytest.fixture
def minimal_work() -> Work:
    """A work with only a title, one author and an ISBN-13."""
    return make_minimal_work()


@pytest.fixture
def timestamp() -> datetime:
    """A fixed export timestamp so output is reproducible."""
    return datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def repository(sample_work: Work, minimal_work: Work) -> InMemoryRepository:
    """Repository holding sample_work and minimal_work."""
    return InMemoryRepository([sample_work, minimal_work])
