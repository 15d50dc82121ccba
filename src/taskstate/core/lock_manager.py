"""Lock manager for cross-process access to task files.

Provides PID-stamped sentinel locking so independently invoked processes
can serialize writes to the same file. Includes stale lock detection for
crash recovery: a sentinel older than the staleness threshold is treated
as abandoned and may be reclaimed by any process.

Uses atomic file creation (O_CREAT | O_EXCL) to prevent TOCTOU races.
Acquisition is bounded by a timeout and reports failure by returning
False; callers decide how to degrade.
"""

import atexit
import contextlib
import logging
import os
import signal
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import FrameType

from ..constants import LOCK_RETRY_INTERVAL, LOCK_STALE_SECONDS, LOCK_SUFFIX, LOCK_TIMEOUT
from ..models import Lock

logger = logging.getLogger(__name__)

# Resources locked by this process and not yet released
_held: set[Path] = set()
_held_guard = threading.Lock()

# Set on shutdown to cut short every wait between retries
_shutdown = threading.Event()


@dataclass
class LockSettings:
    """Process-wide defaults for lock acquisition."""

    stale_seconds: float = LOCK_STALE_SECONDS
    retry_interval: float = LOCK_RETRY_INTERVAL


_settings = LockSettings()


def configure_locks(
    stale_seconds: float = LOCK_STALE_SECONDS,
    retry_interval: float = LOCK_RETRY_INTERVAL,
) -> None:
    """Set the staleness threshold and retry interval used when none is passed.

    Applies to every lock taken afterwards in this process, including those
    taken by the locked file operations and log rotation.
    """
    _settings.stale_seconds = stale_seconds
    _settings.retry_interval = retry_interval


def lock_settings() -> LockSettings:
    """Current process-wide lock defaults."""
    return LockSettings(_settings.stale_seconds, _settings.retry_interval)


def sentinel_path(path: Path) -> Path:
    """Get path to the lock sentinel for a resource."""
    return path.with_name(path.name + LOCK_SUFFIX)


def _try_atomic_create(sentinel: Path) -> bool:
    """Attempt atomic sentinel creation.

    Uses O_CREAT | O_EXCL flags for atomicity - if file exists,
    open() fails immediately rather than overwriting.

    Returns:
        True if sentinel was created, False if it already exists
    """
    try:
        fd = os.open(str(sentinel), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False
    try:
        os.write(fd, str(os.getpid()).encode())
    finally:
        os.close(fd)
    return True


def _read_pid(sentinel: Path) -> int | None:
    try:
        return int(sentinel.read_text().strip())
    except (OSError, ValueError):
        return None


def get_lock(path: Path) -> Lock | None:
    """Get the current lock on a resource, if any.

    Args:
        path: Path of the locked resource (not the sentinel)

    Returns:
        Lock snapshot, or None if no sentinel exists
    """
    sentinel = sentinel_path(path)
    try:
        mtime = sentinel.stat().st_mtime
    except FileNotFoundError:
        return None
    return Lock(
        resource=path,
        sentinel=sentinel,
        pid=_read_pid(sentinel),
        acquired_at=datetime.fromtimestamp(mtime),
        age_seconds=max(0.0, time.time() - mtime),
    )


def is_stale_lock(lock: Lock, stale_seconds: float | None = None) -> bool:
    """Check if lock is stale (older than the staleness threshold).

    The PID is never checked for liveness; age is the only criterion.

    Args:
        lock: Lock to check
        stale_seconds: Max sentinel age before it is considered abandoned
            (defaults to the configured process-wide value)

    Returns:
        True if lock is stale and may be reclaimed
    """
    if stale_seconds is None:
        stale_seconds = _settings.stale_seconds
    return lock.age_seconds > stale_seconds


def _sentinel_age(sentinel: Path) -> float | None:
    """Age of sentinel in seconds, or None if it vanished."""
    try:
        return time.time() - sentinel.stat().st_mtime
    except FileNotFoundError:
        return None


def acquire_lock(
    path: Path,
    timeout: float = LOCK_TIMEOUT,
    *,
    stale_seconds: float | None = None,
    retry_interval: float | None = None,
) -> bool:
    """Acquire an exclusive lock on a resource.

    Retries at a fixed interval until ``timeout`` seconds have elapsed.
    A sentinel older than ``stale_seconds`` is deleted and acquisition is
    retried immediately. Locks are not reentrant.

    Args:
        path: Path of the resource to lock
        timeout: Max seconds to wait for a live lock to be released
        stale_seconds: Sentinel age after which it is reclaimed (defaults to
            the value set by configure_locks, as does retry_interval)
        retry_interval: Seconds between attempts

    Returns:
        True if the lock was acquired, False on timeout or shutdown
    """
    if stale_seconds is None:
        stale_seconds = _settings.stale_seconds
    if retry_interval is None:
        retry_interval = _settings.retry_interval
    sentinel = sentinel_path(path)
    deadline = time.monotonic() + timeout

    while True:
        if _try_atomic_create(sentinel):
            with _held_guard:
                _held.add(path)
            return True

        age = _sentinel_age(sentinel)
        if age is None:
            # Released between attempts - retry
            continue

        if age > stale_seconds:
            logger.debug(
                "Reclaiming stale lock %s (pid %s, %.1fs old)",
                sentinel,
                _read_pid(sentinel),
                age,
            )
            with contextlib.suppress(FileNotFoundError):
                sentinel.unlink()
            continue

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug("Timed out after %.1fs waiting for lock %s", timeout, sentinel)
            return False
        if _shutdown.wait(min(retry_interval, remaining)):
            logger.debug("Shutting down, giving up on lock %s", sentinel)
            return False


def release_lock(path: Path) -> None:
    """Release lock if owned by current process.

    A missing sentinel is not an error: another process may have reclaimed
    it as stale, or it was already released.

    Args:
        path: Path of the locked resource
    """
    sentinel = sentinel_path(path)
    with _held_guard:
        _held.discard(path)

    pid = _read_pid(sentinel)
    if pid is not None and pid != os.getpid():
        logger.debug("Lock %s now held by pid %d, leaving it", sentinel, pid)
        return
    with contextlib.suppress(FileNotFoundError):
        sentinel.unlink()


def held_locks() -> list[Path]:
    """Resources currently locked by this process."""
    with _held_guard:
        return sorted(_held)


def release_all_locks() -> None:
    """Release every lock held by this process.

    Registered with atexit so cooperative shutdowns never leave sentinels
    behind. Abrupt kills are covered by stale lock reclamation instead.
    """
    for path in held_locks():
        release_lock(path)


atexit.register(release_all_locks)


def interrupt_lock_waits() -> None:
    """Make every pending and future lock wait in this process give up.

    Acquisition attempts still succeed when the lock is free; only the
    waiting between retries ends early.
    """
    _shutdown.set()


def _exit_on_signal(signum: int, frame: FrameType | None) -> None:
    interrupt_lock_waits()
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Turn SIGTERM into a normal exit so held locks are released."""
    signal.signal(signal.SIGTERM, _exit_on_signal)


@contextlib.contextmanager
def hold_lock(
    path: Path,
    timeout: float = LOCK_TIMEOUT,
    *,
    stale_seconds: float | None = None,
    retry_interval: float | None = None,
) -> Iterator[bool]:
    """Hold a lock for the duration of a with-block.

    Yields whether the lock was acquired; releases it on every exit path.
    """
    acquired = acquire_lock(
        path, timeout, stale_seconds=stale_seconds, retry_interval=retry_interval
    )
    try:
        yield acquired
    finally:
        if acquired:
            release_lock(path)
