"""Task record directories.

Each record lives in ``<root>/<record-id>/`` and holds a fixed set of
required files. Completed records move under ``<root>/archive/``.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path

from ..constants import (
    ARCHIVE_DIR,
    CHECKLIST_FILE,
    HANDOFF_FILE,
    LOCK_TIMEOUT,
    LOG_FILE,
    POINTER_FILE,
    TASK_FILE,
)
from ..errors import RecordCorruptedError, RecordNotFoundError
from ..models import RecordHealth
from .file_access import atomic_write, locked_write
from .log_rotation import append_log_entry
from .paths import safe_join
from .record_id import format_record_id, is_valid_record_id

logger = logging.getLogger(__name__)

REQUIRED_FILES = (TASK_FILE, CHECKLIST_FILE, HANDOFF_FILE, LOG_FILE)

_TEMPLATES = {
    TASK_FILE: "# {title}\n\nCreated: {created}\n",
    CHECKLIST_FILE: "# Checklist\n\n",
    HANDOFF_FILE: "# Handoff\n\n",
    LOG_FILE: "",
}


def get_pointer_path(root: Path) -> Path:
    """Get path to the pointer document naming the active record."""
    return root / POINTER_FILE


def list_records(root: Path, archived: bool = False) -> list[str]:
    """List record IDs, oldest first.

    Args:
        root: Records root directory
        archived: List archived records instead of live ones

    Returns:
        Sorted record IDs (directories with invalid names are ignored)
    """
    base = root / ARCHIVE_DIR if archived else root
    if not base.is_dir():
        return []
    return sorted(d.name for d in base.iterdir() if d.is_dir() and is_valid_record_id(d.name))


def get_record_dir(root: Path, record_id: str, archived: bool = False) -> Path:
    """Get the directory of an existing record.

    Raises:
        RecordNotFoundError: If the ID is invalid or the record does not exist
    """
    if not is_valid_record_id(record_id):
        raise RecordNotFoundError(f"Invalid record ID: {record_id}")
    base = root / ARCHIVE_DIR if archived else root
    record_dir = safe_join(base, record_id)
    if not record_dir.is_dir():
        raise RecordNotFoundError(f"Record not found: {record_id}")
    return record_dir


def _allocate(root: Path, created: datetime) -> tuple[str, Path]:
    """Claim an unused record ID, moving forward one second per collision."""
    stamp = created.replace(microsecond=0)
    while True:
        record_id = format_record_id(stamp)
        if not (root / ARCHIVE_DIR / record_id).exists():
            record_dir = root / record_id
            try:
                record_dir.mkdir()
                return record_id, record_dir
            except FileExistsError:
                pass
        logger.debug("Record ID %s is taken, trying the next second", record_id)
        stamp += timedelta(seconds=1)


def create_record(
    root: Path,
    title: str,
    now: datetime | None = None,
    lock_timeout: float = LOCK_TIMEOUT,
) -> str:
    """Create a new record and make it the active one.

    Args:
        root: Records root directory (created if missing)
        title: Task title for the primary document
        now: Creation time (defaults to current time)
        lock_timeout: Seconds to wait for file locks

    Returns:
        The new record ID
    """
    root.mkdir(parents=True, exist_ok=True)
    created = now or datetime.now()
    record_id, record_dir = _allocate(root, created)

    stamp = created.isoformat(timespec="seconds")
    for name in REQUIRED_FILES:
        atomic_write(record_dir / name, _TEMPLATES[name].format(title=title, created=stamp))
    append_log_entry(
        record_dir / LOG_FILE, f"Created task: {title}", now=created, timeout=lock_timeout
    )

    set_active_record(root, record_id, lock_timeout)
    logger.info("Created record %s", record_id)
    return record_id


def set_active_record(root: Path, record_id: str, lock_timeout: float = LOCK_TIMEOUT) -> None:
    """Point the pointer document at a record.

    Raises:
        RecordNotFoundError: If the record does not exist
        LockTimeoutError: If the pointer could not be locked
    """
    get_record_dir(root, record_id)
    locked_write(get_pointer_path(root), f"Active task: {record_id}\n", lock_timeout)


def check_record(root: Path, record_id: str) -> RecordHealth:
    """Report which required files of a record are present or missing."""
    record_dir = get_record_dir(root, record_id)
    health = RecordHealth(record_id=record_id)
    for name in REQUIRED_FILES:
        (health.present if (record_dir / name).is_file() else health.missing).append(name)
    return health


def ensure_record_intact(root: Path, record_id: str) -> Path:
    """Get a record's directory, failing if any required file is missing.

    Raises:
        RecordNotFoundError: If the record does not exist
        RecordCorruptedError: If required files are missing
    """
    health = check_record(root, record_id)
    if not health.intact:
        raise RecordCorruptedError(record_id, health.missing, health.repairable)
    return root / record_id


def repair_record(root: Path, record_id: str) -> list[str]:
    """Recreate the missing required files of a partially damaged record.

    Files are created exclusively, so a file restored concurrently by
    another process is left untouched.

    Returns:
        Names of the files recreated

    Raises:
        RecordCorruptedError: If every required file is missing
    """
    health = check_record(root, record_id)
    if health.intact:
        return []
    if not health.repairable:
        raise RecordCorruptedError(record_id, health.missing, repairable=False)

    record_dir = root / record_id
    restored = []
    for name in health.missing:
        content = _TEMPLATES[name].format(title=f"Task {record_id}", created="unknown")
        try:
            with (record_dir / name).open("x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError:
            continue
        restored.append(name)
    logger.info("Repaired %s: restored %s", record_id, ", ".join(restored) or "nothing")
    return restored


def archive_record(root: Path, record_id: str) -> Path:
    """Move a completed record under the archive directory.

    Returns:
        New location of the record directory
    """
    record_dir = get_record_dir(root, record_id)
    archive = root / ARCHIVE_DIR
    archive.mkdir(exist_ok=True)
    target = safe_join(archive, record_id)
    record_dir.rename(target)
    logger.info("Archived record %s", record_id)
    return target
