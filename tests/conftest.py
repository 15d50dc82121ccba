"""Shared test fixtures for taskstate tests."""

import os
import time
from collections.abc import Callable, Generator
from datetime import datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from taskstate.core import configure_locks, create_record, release_all_locks
from taskstate.core.lock_manager import _shutdown, sentinel_path

FOREIGN_PID = 99999


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _release_locks() -> Generator[None, None, None]:
    """Release any lock a test left behind and restore lock defaults."""
    yield
    release_all_locks()
    configure_locks()
    _shutdown.clear()


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Create an empty records root."""
    root = tmp_path / ".tasks"
    root.mkdir()
    return root


@pytest.fixture
def record(store_root: Path) -> tuple[str, Path]:
    """Create a record with all required files.

    Returns tuple of (record_id, record_dir).
    """
    record_id = create_record(store_root, "Sample task", now=datetime(2026, 1, 4, 12, 0, 0))
    return record_id, store_root / record_id


@pytest.fixture
def foreign_lock() -> Callable[..., Path]:
    """Factory that plants a sentinel as if another process held the lock.

    Call with the resource path and optionally ``age`` in seconds.
    """

    def plant(resource: Path, age: float = 0.0) -> Path:
        sentinel = sentinel_path(resource)
        sentinel.write_text(str(FOREIGN_PID))
        if age:
            stamp = time.time() - age
            os.utime(sentinel, (stamp, stamp))
        return sentinel

    return plant
