"""Resolution of the active task record.

The active record is whichever record the pointer document names, falling
back to the most recent record directory. Lookups are cached for a short
freshness window; within that window a changed pointer or a newly created
record is not observed unless the caller invalidates the cache.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..constants import LOCK_TIMEOUT, POINTER_FILE, RESOLVER_TTL
from .file_access import locked_read
from .record_id import find_record_id
from .records import list_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Cached resolution result."""

    record_id: str | None
    expires_at: float


class ActiveRecordResolver:
    """Resolves and caches the active record under a records root.

    Args:
        root: Records root directory
        pointer_path: Pointer document (defaults to ``root / current-task.md``)
        ttl_seconds: Freshness window for cached results
        clock: Monotonic clock, injectable for tests
        lock_timeout: Seconds to wait for the pointer's lock
    """

    def __init__(
        self,
        root: Path,
        pointer_path: Path | None = None,
        ttl_seconds: float = RESOLVER_TTL,
        clock: Callable[[], float] = time.monotonic,
        lock_timeout: float = LOCK_TIMEOUT,
    ) -> None:
        self.root = root
        self.pointer_path = pointer_path or root / POINTER_FILE
        self.ttl_seconds = ttl_seconds
        self.lock_timeout = lock_timeout
        self._clock = clock
        self._cached: Resolution | None = None

    def resolve(self) -> str | None:
        """Return the active record ID, or None if there are no records."""
        now = self._clock()
        if self._cached is not None and now < self._cached.expires_at:
            return self._cached.record_id

        record_id = self._from_pointer() or self._latest()
        self._cached = Resolution(record_id, now + self.ttl_seconds)
        return record_id

    def invalidate(self) -> None:
        """Drop the cached result so the next resolve() recomputes it."""
        self._cached = None

    def _from_pointer(self) -> str | None:
        try:
            text = locked_read(self.pointer_path, self.lock_timeout)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.debug("Pointer %s is not valid UTF-8, ignoring it", self.pointer_path)
            return None
        record_id = find_record_id(text)
        if record_id is None:
            return None
        if not (self.root / record_id).is_dir():
            logger.debug("Pointer names %s but its directory is gone", record_id)
            return None
        return record_id

    def _latest(self) -> str | None:
        records = list_records(self.root)
        return records[-1] if records else None
