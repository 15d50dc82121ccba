"""Task record identifiers.

Record IDs encode their creation time at one-second resolution:
``task-YYYYMMDD-HHMMSS``. The encoding is fixed-width and zero-padded, so
sorting IDs as strings sorts them chronologically.
"""

import re
from datetime import datetime

from ..constants import RECORD_ID_PREFIX

RECORD_ID_FORMAT = f"{RECORD_ID_PREFIX}%Y%m%d-%H%M%S"

# [0-9] rather than \d: only ASCII digits are part of the grammar
_FIELDS = r"([0-9]{4})([0-9]{2})([0-9]{2})-([0-9]{2})([0-9]{2})([0-9]{2})"
_RECORD_ID_RE = re.compile(rf"{re.escape(RECORD_ID_PREFIX)}{_FIELDS}")
_EMBEDDED_RE = re.compile(rf"(?<![0-9A-Za-z]){re.escape(RECORD_ID_PREFIX)}{_FIELDS}(?![0-9])")

_FIELD_RANGES = (
    (1, 12),  # month
    (1, 31),  # day
    (0, 23),  # hour
    (0, 59),  # minute
    (0, 59),  # second
)


def format_record_id(timestamp: datetime) -> str:
    """Format a timestamp as a record ID (sub-second part is dropped)."""
    return timestamp.strftime(RECORD_ID_FORMAT)


def _to_datetime(fields: tuple[str, ...]) -> datetime | None:
    year, *rest = (int(f) for f in fields)
    for value, (low, high) in zip(rest, _FIELD_RANGES, strict=True):
        if not low <= value <= high:
            return None
    try:
        return datetime(year, *rest)
    except ValueError:
        # In range but not a real date, e.g. February 30
        return None


def parse_record_id(record_id: str) -> datetime | None:
    """Parse a record ID back into its creation timestamp.

    Args:
        record_id: Candidate record ID

    Returns:
        Naive datetime, or None if the ID is malformed or not a real date
    """
    match = _RECORD_ID_RE.fullmatch(record_id)
    if match is None:
        return None
    return _to_datetime(match.groups())


def is_valid_record_id(record_id: str) -> bool:
    """Return True if record_id is well-formed and calendar-valid."""
    return parse_record_id(record_id) is not None


def generate_record_id(now: datetime | None = None) -> str:
    """Generate a record ID from the current wall-clock time."""
    return format_record_id(now or datetime.now())


def find_record_id(text: str) -> str | None:
    """Find the record ID embedded in free text.

    Only the first ID-shaped substring is considered; if it is not a real
    date the text is treated as holding no ID.

    Args:
        text: Free text, e.g. the pointer document

    Returns:
        The embedded record ID, or None
    """
    match = _EMBEDDED_RE.search(text)
    if match is None or _to_datetime(match.groups()) is None:
        return None
    return match.group(0)
