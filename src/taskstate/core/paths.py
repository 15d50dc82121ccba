"""Safe path construction from untrusted segments."""

from pathlib import Path


def _basename(segment: str) -> str:
    """Reduce a segment to its final component, treating both separators."""
    return segment.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def safe_join(base: Path, *segments: str) -> Path:
    """Join untrusted segments under a trusted base directory.

    Each segment is reduced to its basename before joining, so traversal
    (``..``), absolute paths and embedded separators cannot escape ``base``.
    Segments that reduce to nothing usable are dropped.

    Args:
        base: Trusted base directory
        segments: Untrusted path segments (e.g. record IDs, file names)

    Returns:
        Path that is always ``base`` or a descendant of it
    """
    path = base
    for segment in segments:
        name = _basename(str(segment))
        if name in ("", ".", ".."):
            continue
        path = path / name
    return path
