# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Crash-safe trimming of a text file to its last N lines.

The whole file is read into memory. That suits chart files capped at a few
thousand short lines but not arbitrarily large files.
"""

import logging
from pathlib import Path

from ...shared.errors import StorageError, TailWriteError
from .gzip_json import atomic_write_bytes

logger = logging.getLogger(__name__)

LINE_TERMINATOR = b"\n"


def nth_from_end(haystack: bytes, needle: bytes, n: int) -> int:
    """
    Position of the n-th ``needle`` in ``haystack``, counting back from the end.

    Returns:
        Byte offset, or -1 if there are fewer than ``n`` occurrences or ``n < 1``
    """
    if n < 1:
        return -1
    pos = len(haystack)
    for _ in range(n):
        pos = haystack.rfind(needle, 0, pos)
        if pos < 0:
            return -1
    return pos


def tail(path: Path, lines: int) -> bytes:
    """
    Return the last ``lines`` lines of a file, like the unix command.

    Raises:
        TailWriteError: If the file cannot be read
    """
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise TailWriteError(f"couldn't open {path} for reading: {e}") from e
    idx = nth_from_end(content, LINE_TERMINATOR, lines + 1)
    return content[idx + 1:]


def trim_to_last_lines(path: Path, n: int) -> bool:
    """
    Rewrite ``path`` so only its last ``n`` lines remain.

    The trimmed content goes to a temp file in the same directory which then
    atomically replaces the original. A file with ``n`` or fewer lines is
    left untouched.

    Args:
        path: File to trim
        n: Number of trailing lines to keep

    Returns:
        True if the file was rewritten

    Raises:
        TailWriteError: If the file cannot be read or replaced; the original
            is left intact
    """
    if n < 0:
        raise ValueError(f"line count must be non-negative, got {n}")

    path = Path(path)
    try:
        size = path.stat().st_size
    except OSError as e:
        raise TailWriteError(f"couldn't open {path} for reading: {e}") from e

    content = tail(path, n)
    if len(content) == size:
        return False

    try:
        atomic_write_bytes(path, content, prefix=".tapwatch-data-")
    except StorageError as e:
        raise TailWriteError(f"could not trim {path} to {n} lines: {e}") from e

    logger.debug(f"Trimmed {path} to its last {n} lines")
    return True
