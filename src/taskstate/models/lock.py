"""Lock model for inspecting lock sentinels.

A sentinel file ``<resource>.lock`` marks a resource as held. Its payload
is the holder's PID (diagnostic only) and its mtime is the acquisition time.
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field


class Lock(BaseModel):
    """Snapshot of a lock sentinel on disk.

    Attributes:
        resource: Path of the locked resource.
        sentinel: Path of the sentinel file.
        pid: PID written by the holder (None if unreadable).
        acquired_at: Sentinel mtime.
        age_seconds: Seconds since acquisition when the snapshot was taken.
    """

    resource: Path = Field(description="Locked resource path")
    sentinel: Path = Field(description="Sentinel file path")
    pid: int | None = Field(default=None, description="PID of the holder")
    acquired_at: datetime = Field(description="When the sentinel was created")
    age_seconds: float = Field(ge=0, description="Sentinel age in seconds")
