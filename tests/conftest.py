"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Restorer fixtures: Recording and failing restorers
- Store fixtures: One fixture per storage backend
- Engine fixtures: Engines wired to an in-memory store
"""

from pathlib import Path

import pytest

from savepoints.config import HistoryConfig
from savepoints.core.engine import SaveHistoryEngine
from savepoints.core.restorer import Restorer
from savepoints.persistence import (
    DiskCacheSaveStore,
    FileSaveStore,
    MemorySaveStore,
    SQLiteSaveStore,
)

# =============================================================================
# Restorer Fixtures
# =============================================================================


class RecordingRestorer(Restorer):
    """Restorer that remembers every payload it was asked to apply.

    Set ``fail_on`` to a payload to make ``apply`` raise for it.
    """

    def __init__(self) -> None:
        self.applied: list[str] = []
        self.fail_on: str | None = None

    def apply(self, payload: str) -> None:
        if payload == self.fail_on:
            raise RuntimeError(f"cannot restore {payload!r}")
        self.applied.append(payload)


@pytest.fixture
def restorer() -> RecordingRestorer:
    """Create a recording restorer."""
    return RecordingRestorer()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> MemorySaveStore:
    """Create an in-memory store."""
    return MemorySaveStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileSaveStore:
    """Create a file store in a temporary directory."""
    return FileSaveStore(tmp_path / "saves")


@pytest.fixture
def sqlite_store(tmp_path: Path):
    """Create a SQLite store in a temporary directory."""
    store = SQLiteSaveStore(tmp_path / "saves.db")
    yield store
    store.close()


@pytest.fixture
def cache_store(tmp_path: Path):
    """Create a diskcache store in a temporary directory."""
    store = DiskCacheSaveStore(tmp_path / "cache")
    yield store
    store.close()


@pytest.fixture(params=["memory", "file", "sqlite", "diskcache"])
def any_store(request, tmp_path: Path):
    """Parametrized fixture yielding each store backend in turn."""
    if request.param == "memory":
        store = MemorySaveStore()
    elif request.param == "file":
        store = FileSaveStore(tmp_path / "saves")
    elif request.param == "sqlite":
        store = SQLiteSaveStore(tmp_path / "saves.db")
    else:
        store = DiskCacheSaveStore(tmp_path / "cache")
    yield store
    store.close()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def engine(memory_store: MemorySaveStore, restorer: RecordingRestorer) -> SaveHistoryEngine:
    """Create an engine backed by an in-memory store with default policy."""
    return SaveHistoryEngine(memory_store, restorer=restorer)


@pytest.fixture
def unbounded_engine(
    memory_store: MemorySaveStore, restorer: RecordingRestorer
) -> SaveHistoryEngine:
    """Create an engine that may rewind down to an empty history."""
    return SaveHistoryEngine(
        memory_store, restorer=restorer, config=HistoryConfig(min_committed=0)
    )
