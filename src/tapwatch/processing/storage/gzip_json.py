# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Gzip-compressed JSON files, written atomically.

Files are written to a temp file in the destination directory and renamed
into place, so readers never see a partially written file at the final path.
The gzip header records the original file name and a free-text comment.
"""

import gzip
import json
import os
import struct
import tempfile
import time
import zlib
from pathlib import Path
from typing import Any, Optional, Union

from ...shared.errors import StorageError, TelemetryDecodeError

# Compression level (6 provides good balance: 7-10x compression ratio)
COMPRESSION_LEVEL = 6

_FNAME = 0x08
_FCOMMENT = 0x10
_OS_UNKNOWN = 255


def _header_field(text: str) -> bytes:
    # RFC 1952 header strings are ISO 8859-1, zero-terminated.
    return text.replace("\x00", "").encode("latin-1", errors="replace") + b"\x00"


def gzip_bytes(data: bytes, name: str = "", comment: str = "", mtime: Optional[float] = None) -> bytes:
    """
    Compress ``data`` into a single gzip member.

    Built by hand because ``gzip.GzipFile`` cannot write the FCOMMENT field;
    ``gzip.decompress`` reads the result.

    Args:
        data: Uncompressed bytes
        name: Original file name stored in the header
        comment: Comment stored in the header
        mtime: Modification time stored in the header, defaults to now

    Returns:
        Gzip stream bytes
    """
    flags = (_FNAME if name else 0) | (_FCOMMENT if comment else 0)
    stamp = int(time.time() if mtime is None else mtime) & 0xFFFFFFFF
    header = b"\x1f\x8b\x08" + struct.pack("<BIBB", flags, stamp, 0, _OS_UNKNOWN)
    if name:
        header += _header_field(name)
    if comment:
        header += _header_field(comment)

    compressor = zlib.compressobj(COMPRESSION_LEVEL, zlib.DEFLATED, -zlib.MAX_WBITS)
    body = compressor.compress(data) + compressor.flush()
    trailer = struct.pack("<II", zlib.crc32(data) & 0xFFFFFFFF, len(data) & 0xFFFFFFFF)
    return header + body + trailer


def atomic_write_bytes(path: Path, content: bytes, prefix: str = ".tapwatch-") -> None:
    """
    Replace ``path`` with ``content`` via a temp file in the same directory.

    Raises:
        StorageError: If any step fails; the original file is left untouched
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=prefix)
    except OSError as e:
        raise StorageError(f"could not create tempfile for {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise StorageError(f"could not write {path}: {e}") from e


def _reject_constant(name: str) -> Any:
    raise TelemetryDecodeError(f"non-finite number {name} is not valid JSON")


def decode_json(raw: Union[bytes, str], source: str = "payload") -> Any:
    """
    Parse strict JSON: ``NaN`` and ``Infinity`` are rejected.

    Raises:
        TelemetryDecodeError: If ``raw`` is not valid UTF-8 JSON
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        # ValueError covers bad syntax, bad UTF-8 and over-long integers.
        raise TelemetryDecodeError(f"invalid JSON in {source}: {e}") from e


def write_gzip_json(path: Path, payload: Any, comment: str = "") -> None:
    """Serialize ``payload`` as compact JSON and write it gzip-compressed to ``path``."""
    path = Path(path)
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    name = path.name[: -len(".gz")] if path.name.endswith(".gz") else path.name
    atomic_write_bytes(path, gzip_bytes(raw, name=name, comment=comment))


def read_gzip_json(path: Path) -> Any:
    """
    Read and decode a gzip-compressed JSON file.

    Raises:
        StorageError: If the file cannot be read
        TelemetryDecodeError: If the content is not valid gzip or JSON
    """
    try:
        compressed = Path(path).read_bytes()
    except OSError as e:
        raise StorageError(f"couldn't open {path}: {e}") from e

    try:
        raw = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as e:
        raise TelemetryDecodeError(f"couldn't gunzip {path}: {e}") from e

    return decode_json(raw, str(path))
