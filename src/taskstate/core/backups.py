"""Bounded backup retention for task files.

Backups live next to the original as hidden files named
``.<name>.<epoch-ms>.bak``. After each new backup, older ones beyond the
retention count are pruned, newest kept.
"""

import logging
import re
import shutil
import time
from pathlib import Path

from ..constants import BACKUP_SUFFIX, MAX_BACKUPS

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def backup_path(path: Path, stamp_ms: int) -> Path:
    """Get backup path for a file at a given millisecond timestamp."""
    return path.with_name(f".{path.name}.{stamp_ms}{BACKUP_SUFFIX}")


def _backup_stamps(path: Path) -> list[tuple[int, Path]]:
    pattern = re.compile(rf"\.{re.escape(path.name)}\.([0-9]+){re.escape(BACKUP_SUFFIX)}")
    stamps = []
    for candidate in path.parent.iterdir():
        match = pattern.fullmatch(candidate.name)
        if match and candidate.is_file():
            stamps.append((int(match.group(1)), candidate))
    return sorted(stamps, reverse=True)  # Newest first


def list_backups(path: Path) -> list[Path]:
    """List backups of a file, newest first.

    Args:
        path: Original file

    Returns:
        Backup paths ordered by embedded timestamp, descending
    """
    if not path.parent.exists():
        return []
    return [backup for _, backup in _backup_stamps(path)]


def backup_file(path: Path, max_count: int = MAX_BACKUPS) -> Path:
    """Back up a file and prune old backups beyond max_count.

    Two backups in the same millisecond do not collide: the later one takes
    the next free millisecond.

    Args:
        path: File to back up
        max_count: Number of backups of this file to retain

    Returns:
        Path of the new backup

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If max_count is less than 1
    """
    if max_count < 1:
        raise ValueError(f"max_count must be at least 1, got {max_count}")

    stamp = _now_ms()
    with path.open("rb") as src:
        while True:
            target = backup_path(path, stamp)
            try:
                with target.open("xb") as dst:
                    shutil.copyfileobj(src, dst)
                break
            except FileExistsError:
                stamp += 1
    shutil.copystat(path, target)

    _prune_backups(path, max_count)
    return target


def _prune_backups(path: Path, max_count: int) -> None:
    """Remove backups beyond max_count, keeping newest."""
    for _, old in _backup_stamps(path)[max_count:]:
        logger.debug("Pruning backup %s", old)
        old.unlink(missing_ok=True)
