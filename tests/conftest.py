"""Pytest fixtures for QuickJot tests."""

from datetime import date
from pathlib import Path

import pytest

from quickjot.logging import set_logger
from quickjot.queue.connectivity import ManualConnectivity
from quickjot.queue.offline import PersistenceQueue
from quickjot.queue.store import FileBlobStore, MemoryBlobStore

# A Wednesday
REFERENCE_DATE = date(2025, 1, 15)


@pytest.fixture
def today() -> date:
    """Fixed reference date for relative date resolution."""
    return REFERENCE_DATE


@pytest.fixture
def isolated_config(tmp_path, monkeypatch) -> Path:
    """Point config, locks and logs at a temporary directory."""
    config_dir = tmp_path / ".quickjot"
    monkeypatch.setattr("quickjot.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("quickjot.config.CONFIG_FILE", config_dir / "config.toml")
    monkeypatch.setattr("quickjot.config.LOCK_DIR", config_dir / "locks")
    monkeypatch.setattr("quickjot.logging.LOGS_DIR", config_dir / "logs")
    for name in ("QUICKJOT_CLASSIFIER_URL", "QUICKJOT_SAVE_URL", "QUICKJOT_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return config_dir


@pytest.fixture(autouse=True)
def no_session_logger():
    """Tests start and end without an active session logger."""
    set_logger(None)
    yield
    set_logger(None)


@pytest.fixture
def memory_queue() -> PersistenceQueue:
    return PersistenceQueue(MemoryBlobStore(), max_retries=3)


@pytest.fixture
def file_queue(isolated_config, tmp_path) -> PersistenceQueue:
    """File-backed queue with a dead-letter log, all under tmp_path."""
    queue_dir = tmp_path / "queue"
    return PersistenceQueue(
        FileBlobStore(queue_dir),
        max_retries=3,
        dead_letter_path=queue_dir / "dead_letter.jsonl",
    )


@pytest.fixture
def connectivity() -> ManualConnectivity:
    return ManualConnectivity()
