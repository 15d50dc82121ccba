"""Tests for locked file access."""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from taskstate.core.file_access import (
    locked_append,
    locked_read,
    locked_read_json,
    locked_write,
    locked_write_json,
    merge_pending,
    pending_path,
)
from taskstate.core.lock_manager import configure_locks, sentinel_path
from taskstate.errors import LockTimeoutError


@pytest.fixture
def doc(tmp_path: Path) -> Path:
    """Create a document with known content."""
    path = tmp_path / "handoff.md"
    path.write_text("# Handoff\n")
    return path


class TestLockedRead:
    """Tests for locked_read function."""

    def test_reads_content(self, doc: Path) -> None:
        """Content is returned and the lock released."""
        assert locked_read(doc) == "# Handoff\n"
        assert not sentinel_path(doc).exists()

    def test_falls_back_when_locked(self, doc: Path, foreign_lock: Callable[..., Path]) -> None:
        """Busy lock degrades to an unsynchronized read."""
        foreign_lock(doc)
        assert locked_read(doc, timeout=0.1) == "# Handoff\n"
        assert sentinel_path(doc).exists()

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Missing file is reported and no lock is left behind."""
        path = tmp_path / "missing.md"
        with pytest.raises(FileNotFoundError):
            locked_read(path)
        assert not sentinel_path(path).exists()


class TestLockedWrite:
    """Tests for locked_write function."""

    def test_replaces_content(self, doc: Path) -> None:
        """Content is replaced and the lock released."""
        locked_write(doc, "# Handoff\n\nNext: tests\n")
        assert doc.read_text() == "# Handoff\n\nNext: tests\n"
        assert not sentinel_path(doc).exists()

    def test_creates_file(self, tmp_path: Path) -> None:
        """Writing a new file creates it."""
        path = tmp_path / "notes.md"
        locked_write(path, "hello\n")
        assert path.read_text() == "hello\n"

    def test_leaves_no_temp_files(self, doc: Path) -> None:
        """Atomic write cleans up after itself."""
        locked_write(doc, "new\n")
        assert sorted(p.name for p in doc.parent.iterdir()) == ["handoff.md"]

    def test_raises_when_locked(self, doc: Path, foreign_lock: Callable[..., Path]) -> None:
        """Busy lock is a hard error and nothing is written."""
        foreign_lock(doc)
        with pytest.raises(LockTimeoutError):
            locked_write(doc, "clobbered\n", timeout=0.1)
        assert doc.read_text() == "# Handoff\n"
        assert sentinel_path(doc).exists()

    def test_configured_staleness_reclaims(
        self, doc: Path, foreign_lock: Callable[..., Path]
    ) -> None:
        """A lock older than the configured threshold is reclaimed by the write."""
        foreign_lock(doc, age=5)
        configure_locks(stale_seconds=2)

        locked_write(doc, "updated\n", timeout=0.1)
        assert doc.read_text() == "updated\n"
        assert not sentinel_path(doc).exists()


class TestLockedAppend:
    """Tests for locked_append function."""

    def test_appends(self, doc: Path) -> None:
        """Content is appended and the lock released."""
        assert locked_append(doc, "- item\n") is True
        assert doc.read_text() == "# Handoff\n- item\n"
        assert not sentinel_path(doc).exists()
        assert not pending_path(doc).exists()

    def test_diverts_to_pending_when_locked(
        self,
        doc: Path,
        foreign_lock: Callable[..., Path],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Busy lock sends content to the pending file with a warning."""
        foreign_lock(doc)
        with caplog.at_level(logging.WARNING):
            assert locked_append(doc, "- first\n", timeout=0.1) is False
            assert locked_append(doc, "- second\n", timeout=0.1) is False

        assert doc.read_text() == "# Handoff\n"
        assert pending_path(doc).read_text() == "- first\n- second\n"
        assert pending_path(doc).name == "handoff.md.pending"
        assert "appending to" in caplog.text


class TestMergePending:
    """Tests for merge_pending function."""

    def test_merges_and_removes_pending(self, doc: Path) -> None:
        """Pending lines move into the primary file."""
        pending_path(doc).write_text("- a\n- b\n")

        assert merge_pending(doc) == 2
        assert doc.read_text() == "# Handoff\n- a\n- b\n"
        assert not pending_path(doc).exists()
        assert not sentinel_path(doc).exists()

    def test_nothing_pending(self, doc: Path) -> None:
        """No pending file means nothing to merge."""
        assert merge_pending(doc) == 0
        assert doc.read_text() == "# Handoff\n"

    def test_adds_missing_newline(self, tmp_path: Path) -> None:
        """Merged lines start on a fresh line."""
        path = tmp_path / "activity.log"
        path.write_text("line 1")
        pending_path(path).write_text("line 2\n")

        assert merge_pending(path) == 1
        assert path.read_text() == "line 1\nline 2\n"

    def test_creates_primary_if_missing(self, tmp_path: Path) -> None:
        """Pending content survives even if the primary file is gone."""
        path = tmp_path / "activity.log"
        pending_path(path).write_text("line 1\n")

        assert merge_pending(path) == 1
        assert path.read_text() == "line 1\n"

    def test_keeps_pending_when_locked(self, doc: Path, foreign_lock: Callable[..., Path]) -> None:
        """Busy lock leaves pending entries for a later merge."""
        pending_path(doc).write_text("- a\n")
        foreign_lock(doc)

        assert merge_pending(doc, timeout=0.1) == 0
        assert pending_path(doc).read_text() == "- a\n"
        assert doc.read_text() == "# Handoff\n"

    def test_append_then_merge(self, doc: Path, foreign_lock: Callable[..., Path]) -> None:
        """Entries diverted while locked are recovered once the lock frees."""
        sentinel = foreign_lock(doc)
        locked_append(doc, "- late\n", timeout=0.1)
        sentinel.unlink()

        assert merge_pending(doc) == 1
        assert doc.read_text() == "# Handoff\n- late\n"


class TestLockedJson:
    """Tests for locked JSON helpers."""

    def test_write_then_read(self, tmp_path: Path) -> None:
        """JSON side-files are written and read under lock."""
        path = tmp_path / "state.json"
        locked_write_json(path, {"phase": "review", "steps": [1, 2]})
        assert locked_read_json(path) == {"phase": "review", "steps": [1, 2]}
        assert path.read_text().endswith("\n")
