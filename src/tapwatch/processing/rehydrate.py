# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Startup rehydration of the tap registry from disk.

Bundles and not-yet-archived raw updates inside the retention window are
replayed into the registry. Files are selected by the date in their name,
not by file metadata, and the exact window is applied afterwards with
``keep_since``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..shared.errors import StorageError, TelemetryDecodeError
from .aggregate.registry import TapRegistry
from .storage.layout import ERA_FORMAT, DataLayout, era_of
from .storage.reports import read_batch

logger = logging.getLogger(__name__)


@dataclass
class RehydrateResult:
    """Summary of a rehydration pass."""

    taps: List[str] = field(default_factory=list)
    files_loaded: int = 0
    files_skipped: List[str] = field(default_factory=list)


def rehydrate(
    registry: TapRegistry,
    layout: DataLayout,
    retention: timedelta,
    now: Optional[datetime] = None,
) -> RehydrateResult:
    """
    Load stored reports inside the retention window into the registry.

    Args:
        registry: Registry to populate
        layout: Data directory layout
        retention: Maximum sample age to keep
        now: Reference instant, defaults to the current UTC time

    Returns:
        RehydrateResult listing loaded taps and skipped files
    """
    now = now or datetime.now(timezone.utc)
    cutoff_label = (now - retention).astimezone(timezone.utc).strftime(ERA_FORMAT)
    result = RehydrateResult()

    for tap_name in layout.list_taps():
        loaded = 0
        for path in layout.list_stored_reports(tap_name):
            if era_of(path.name) < cutoff_label:
                continue
            try:
                batch = read_batch(path)
            except TelemetryDecodeError as e:
                logger.warning(f"Skipping unreadable report {path}: {e}")
                result.files_skipped.append(str(path))
                continue
            except StorageError as e:
                logger.error(f"Skipping {path}: {e}")
                result.files_skipped.append(str(path))
                continue

            batch.tap_name = tap_name
            registry.append(batch)
            loaded += 1

        if not loaded:
            continue
        result.files_loaded += loaded
        if registry.keep_since(tap_name, retention, now=now) is not None:
            result.taps.append(tap_name)
            logger.debug(f"Rehydrated {tap_name} from {loaded} files")

    logger.info(
        f"Rehydrated {len(result.taps)} taps from {result.files_loaded} files "
        f"({len(result.files_skipped)} skipped)"
    )
    return result
