"""Core state-access layer for taskstate.

This package contains the file-level building blocks every command and
hook goes through:
- paths: safe joining of untrusted path segments
- record_id: record identifier formatting and validation
- lock_manager: cross-process sentinel locks with stale lock recovery
- file_access: locked read/write/append with degradation
- tail: last-N-lines of large logs
- log_rotation: size-triggered log rotation
- backups: bounded backup retention
- records: record directory layout and integrity
- active_record: cached resolution of the active record
"""

from .active_record import ActiveRecordResolver
from .backups import backup_file, list_backups
from .file_access import (
    locked_append,
    locked_read,
    locked_read_json,
    locked_write,
    locked_write_json,
    merge_pending,
    pending_path,
)
from .lock_manager import (
    LockSettings,
    acquire_lock,
    configure_locks,
    get_lock,
    hold_lock,
    install_signal_handlers,
    interrupt_lock_waits,
    is_stale_lock,
    lock_settings,
    release_all_locks,
    release_lock,
)
from .log_rotation import append_log_entry, count_lines, rotate_log
from .paths import safe_join
from .record_id import (
    find_record_id,
    format_record_id,
    generate_record_id,
    is_valid_record_id,
    parse_record_id,
)
from .records import (
    REQUIRED_FILES,
    archive_record,
    check_record,
    create_record,
    ensure_record_intact,
    get_pointer_path,
    get_record_dir,
    list_records,
    repair_record,
    set_active_record,
)
from .tail import last_lines

__all__ = [
    "REQUIRED_FILES",
    "ActiveRecordResolver",
    "LockSettings",
    "acquire_lock",
    "append_log_entry",
    "archive_record",
    "backup_file",
    "check_record",
    "configure_locks",
    "count_lines",
    "create_record",
    "ensure_record_intact",
    "find_record_id",
    "format_record_id",
    "generate_record_id",
    "get_lock",
    "get_pointer_path",
    "get_record_dir",
    "hold_lock",
    "install_signal_handlers",
    "interrupt_lock_waits",
    "is_stale_lock",
    "is_valid_record_id",
    "last_lines",
    "list_backups",
    "list_records",
    "lock_settings",
    "locked_append",
    "locked_read",
    "locked_read_json",
    "locked_write",
    "locked_write_json",
    "merge_pending",
    "parse_record_id",
    "pending_path",
    "release_all_locks",
    "release_lock",
    "repair_record",
    "rotate_log",
    "safe_join",
    "set_active_record",
]
