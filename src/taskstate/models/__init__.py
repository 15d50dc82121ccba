"""Pydantic data models for taskstate.

- Lock: snapshot of a lock sentinel (Lock)
- Record integrity reports (RecordHealth)
"""

from .lock import Lock
from .record import RecordHealth

__all__ = [
    "Lock",
    "RecordHealth",
]
