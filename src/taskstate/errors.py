"""Errors raised by the task state layer."""


class TaskStateError(Exception):
    """Base exception for task state errors."""


class RecordNotFoundError(TaskStateError):
    """Raised when a task record does not exist."""


class LockTimeoutError(TaskStateError):
    """Raised when an exclusive lock is required but could not be acquired."""


class RecordCorruptedError(TaskStateError):
    """Raised when a task record is missing required files.

    Attributes:
        record_id: ID of the damaged record.
        missing: Names of the required files that are absent.
        repairable: True if at least one required file survived.
    """

    def __init__(self, record_id: str, missing: list[str], repairable: bool) -> None:
        self.record_id = record_id
        self.missing = missing
        self.repairable = repairable
        state = "repairable" if repairable else "not repairable"
        super().__init__(f"Record {record_id} is missing {', '.join(missing)} ({state})")
