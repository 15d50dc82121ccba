"""Size-triggered rotation of task activity logs.

When a log grows past the rotation threshold it is backed up in full and
rewritten to hold a rotation marker followed by the most recent
``threshold`` lines. The marker left by an earlier rotation is not content:
it is neither counted towards the threshold nor carried over.

Rotation is housekeeping: if the log's lock is busy the pass is skipped
and retried on a later append.
"""

import logging
from datetime import datetime
from pathlib import Path

from ..constants import LOCK_TIMEOUT, ROTATION_BACKUPS, ROTATION_THRESHOLD
from .backups import backup_file
from .file_access import atomic_write, locked_append
from .lock_manager import hold_lock

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MARKER_PREFIX = "# Log rotated at "
ROTATION_MARKER = MARKER_PREFIX + "{timestamp} (kept last {kept} of {total} lines)"


def _content_lines(content: str) -> list[str]:
    if not content:
        return []
    lines = content.removesuffix("\n").split("\n")
    if lines[0].startswith(MARKER_PREFIX):
        del lines[0]
    return lines


def count_lines(path: Path) -> int:
    """Count content lines in a log, excluding a leading rotation marker.

    Returns 0 if the log does not exist.
    """
    marker = MARKER_PREFIX.encode()
    try:
        with path.open("rb") as f:
            first = f.readline()
            if not first:
                return 0
            return sum(1 for _ in f) + (0 if first.startswith(marker) else 1)
    except FileNotFoundError:
        return 0


def rotate_log(
    path: Path,
    threshold: int = ROTATION_THRESHOLD,
    *,
    keep_backups: int = ROTATION_BACKUPS,
    timeout: float = LOCK_TIMEOUT,
    now: datetime | None = None,
) -> bool:
    """Rotate a log if it has more than threshold content lines.

    Args:
        path: Log file
        threshold: Max content lines to keep
        keep_backups: Number of pre-rotation backups to retain
        timeout: Seconds to wait for the log's lock
        now: Rotation time for the marker (defaults to current time)

    Returns:
        True if the log was rotated
    """
    if threshold < 1:
        raise ValueError(f"threshold must be at least 1, got {threshold}")
    if count_lines(path) <= threshold:
        return False

    with hold_lock(path, timeout) as acquired:
        if not acquired:
            logger.debug("Log %s is busy, skipping rotation", path)
            return False

        # Re-read under the lock: another process may have rotated already
        lines = _content_lines(path.read_text(encoding="utf-8"))
        if len(lines) <= threshold:
            return False

        backup = backup_file(path, keep_backups)
        marker = ROTATION_MARKER.format(
            timestamp=(now or datetime.now()).strftime(TIMESTAMP_FORMAT),
            kept=threshold,
            total=len(lines),
        )
        atomic_write(path, "\n".join([marker, *lines[-threshold:]]) + "\n")

    logger.info("Rotated %s (%d lines, backup %s)", path, len(lines), backup.name)
    return True


def format_entry(message: str, now: datetime | None = None) -> str:
    """Format a single timestamped log line (newline-terminated)."""
    text = " ".join(message.splitlines())
    return f"[{(now or datetime.now()).strftime(TIMESTAMP_FORMAT)}] {text}\n"


def append_log_entry(
    path: Path,
    message: str,
    *,
    threshold: int = ROTATION_THRESHOLD,
    keep_backups: int = ROTATION_BACKUPS,
    timeout: float = LOCK_TIMEOUT,
    now: datetime | None = None,
    headroom: int | None = None,
) -> bool:
    """Append a timestamped entry to a log, rotating it if it grew too long.

    Rotation runs once the log exceeds ``threshold + headroom`` content
    lines, so a freshly rotated log takes ``headroom`` more entries before
    it is rewritten again.

    Args:
        path: Log file
        message: Entry text (newlines are folded into spaces)
        threshold: Content lines kept by rotation
        keep_backups: Backups retained by rotation
        timeout: Seconds to wait for the log's lock
        now: Entry timestamp (defaults to current time)
        headroom: Lines allowed past the threshold (defaults to a tenth of it)

    Returns:
        True if appended to the log, False if diverted to the pending file
    """
    if headroom is None:
        headroom = threshold // 10
    appended = locked_append(path, format_entry(message, now), timeout)
    if appended and count_lines(path) > threshold + headroom:
        rotate_log(path, threshold, keep_backups=keep_backups, timeout=timeout, now=now)
    return appended
