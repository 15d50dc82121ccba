"""Efficient retrieval of the last lines of append-only logs."""

import os
from pathlib import Path

from ..constants import TAIL_BLOCK_SIZE, TAIL_WHOLE_FILE_LIMIT


def _decode(line: bytes) -> str:
    return line.decode("utf-8", errors="replace").removesuffix("\r")


def last_lines(
    path: Path,
    count: int,
    *,
    whole_file_limit: int = TAIL_WHOLE_FILE_LIMIT,
    block_size: int = TAIL_BLOCK_SIZE,
) -> list[str]:
    """Return the last ``count`` lines of a file in original order.

    Small files are read whole. Larger files are scanned backward from the
    end in ``block_size`` blocks until enough complete lines are found, so
    the cost depends on ``count`` rather than the file size. Both paths
    return identical results; a final newline does not produce an empty
    trailing line.

    Args:
        path: File to read
        count: Max number of lines to return
        whole_file_limit: Files smaller than this many bytes are read whole
        block_size: Bytes per backward read

    Returns:
        Up to ``count`` lines, without line terminators

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if count <= 0:
        return []

    with path.open("rb") as f:
        end = f.seek(0, os.SEEK_END)
        if end == 0:
            return []
        if end < whole_file_limit:
            f.seek(0)
            data = f.read().removesuffix(b"\n")
            if not data:
                return []
            return [_decode(line) for line in data.split(b"\n")[-count:]]

        f.seek(end - 1)
        if f.read(1) == b"\n":
            end -= 1
        if end == 0:
            return []

        pos = end
        lines: list[bytes] = []
        fragment = b""
        while pos > 0 and len(lines) < count:
            size = min(block_size, pos)
            pos -= size
            f.seek(pos)
            parts = (f.read(size) + fragment).split(b"\n")
            # First part may continue into the previous block
            fragment = parts.pop(0)
            lines[:0] = parts
        if pos == 0:
            lines.insert(0, fragment)

    return [_decode(line) for line in lines[-count:]]
