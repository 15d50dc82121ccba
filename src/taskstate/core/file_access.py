"""Locked read, write and append for task files.

Every operation takes the file's lock and releases it on every exit path.
When the lock cannot be acquired in time each operation degrades in its
own way:

- read: falls back to an unsynchronized read
- write: raises LockTimeoutError and writes nothing
- append: diverts the content to the ``<file>.pending`` overflow file
"""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..constants import LOCK_TIMEOUT, PENDING_SUFFIX
from ..errors import LockTimeoutError
from .lock_manager import hold_lock

logger = logging.getLogger(__name__)


def pending_path(path: Path) -> Path:
    """Get path to the pending overflow file for a resource."""
    return path.with_name(path.name + PENDING_SUFFIX)


def atomic_write(path: Path, content: str) -> None:
    """Write via temp file + rename so readers never see a partial file."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


def _append(path: Path, content: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(content)


def _missing_final_newline(path: Path) -> bool:
    try:
        with path.open("rb") as f:
            if f.seek(0, os.SEEK_END) == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"
    except FileNotFoundError:
        return False


def locked_read(path: Path, timeout: float = LOCK_TIMEOUT) -> str:
    """Read a file under its lock.

    If the lock cannot be acquired the file is read anyway; the result may
    interleave with a concurrent writer.

    Args:
        path: File to read
        timeout: Seconds to wait for the lock

    Returns:
        File content

    Raises:
        FileNotFoundError: If the file does not exist
    """
    with hold_lock(path, timeout) as acquired:
        if not acquired:
            logger.debug("Lock unavailable for %s, reading unsynchronized", path)
        return path.read_text(encoding="utf-8")


def locked_write(path: Path, content: str, timeout: float = LOCK_TIMEOUT) -> None:
    """Replace a file's content under its lock.

    Args:
        path: File to write
        content: New content
        timeout: Seconds to wait for the lock

    Raises:
        LockTimeoutError: If the lock could not be acquired (nothing written)
    """
    with hold_lock(path, timeout) as acquired:
        if not acquired:
            raise LockTimeoutError(f"Could not lock {path} within {timeout:g}s")
        atomic_write(path, content)


def locked_append(path: Path, content: str, timeout: float = LOCK_TIMEOUT) -> bool:
    """Append to a file under its lock.

    If the lock cannot be acquired the content goes to the pending overflow
    file instead, to be merged back later by merge_pending().

    Args:
        path: File to append to
        content: Text to append (include the trailing newline)
        timeout: Seconds to wait for the lock

    Returns:
        True if appended to the file, False if diverted to the pending file
    """
    with hold_lock(path, timeout) as acquired:
        if acquired:
            _append(path, content)
            return True

    overflow = pending_path(path)
    logger.warning("Lock unavailable for %s, appending to %s", path, overflow)
    _append(overflow, content)
    return False


def merge_pending(path: Path, timeout: float = LOCK_TIMEOUT) -> int:
    """Merge the pending overflow file back into its primary file.

    The pending file is renamed aside before reading so that appends racing
    with the merge start a fresh pending file instead of being lost.

    Args:
        path: Primary file
        timeout: Seconds to wait for the primary's lock

    Returns:
        Number of lines merged (0 if nothing pending or lock unavailable)
    """
    overflow = pending_path(path)
    if not overflow.exists():
        return 0

    with hold_lock(path, timeout) as acquired:
        if not acquired:
            logger.debug("Lock unavailable for %s, leaving pending entries", path)
            return 0

        claimed = overflow.with_name(f"{overflow.name}.{os.getpid()}")
        try:
            overflow.rename(claimed)
        except FileNotFoundError:
            return 0

        content = claimed.read_text(encoding="utf-8")
        merged = len(content.splitlines())
        if content:
            if _missing_final_newline(path):
                content = "\n" + content
            _append(path, content)
        claimed.unlink()

    logger.info("Merged %d pending line(s) into %s", merged, path)
    return merged


def locked_read_json(path: Path, timeout: float = LOCK_TIMEOUT) -> Any:
    """Read a JSON side-file under its lock (see locked_read)."""
    return json.loads(locked_read(path, timeout))


def locked_write_json(path: Path, data: Any, timeout: float = LOCK_TIMEOUT) -> None:
    """Write a JSON side-file under its lock (see locked_write)."""
    locked_write(path, json.dumps(data, indent=2, default=str) + "\n", timeout)
