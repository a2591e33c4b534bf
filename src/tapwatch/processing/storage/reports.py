# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Read and write stored telemetry batches (raw updates and era bundles)."""

from pathlib import Path

from ..aggregate.sample import TelemetryBatch
from .gzip_json import read_gzip_json, write_gzip_json


def read_batch(path: Path) -> TelemetryBatch:
    """
    Load a stored batch.

    Raises:
        StorageError: If the file cannot be read
        TelemetryDecodeError: If the file is corrupt or malformed
    """
    return TelemetryBatch.from_dict(read_gzip_json(path))


def write_batch(path: Path, batch: TelemetryBatch, comment: str = "") -> None:
    """Persist a batch as gzip-compressed JSON."""
    write_gzip_json(path, batch.to_dict(), comment=comment)
