# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Archival job: consolidate raw update files into per-day bundles.

Raw updates (``yyyymmddhhmmss.json.gz``) from completed days are merged into
one bundle per day (``yyyymmdd.json.gz``) and then moved to ``archive/``.
Today's files are never touched because more may still arrive.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from ...shared.errors import StorageError, TelemetryDecodeError
from ..aggregate.report import AggregateReport
from ..storage.layout import ERA_FORMAT, DataLayout, era_of
from ..storage.reports import read_batch

logger = logging.getLogger(__name__)


@dataclass
class RepackResult:
    """Outcome of one repack run for a tap."""

    tap_name: str
    bundles: List[str] = field(default_factory=list)
    archived: int = 0
    skipped: List[str] = field(default_factory=list)
    aborted: bool = False

    def to_dict(self) -> dict:
        return {
            "tap": self.tap_name,
            "bundles": list(self.bundles),
            "archived": self.archived,
            "skipped": list(self.skipped),
            "aborted": self.aborted,
        }


class _OpenEra:
    """Report being built for one era plus the raw files merged into it."""

    def __init__(self, label: str, report: AggregateReport):
        self.label = label
        self.report = report
        self.merged: List[Path] = []


class Repacker:
    """Runs the archival job for one data root."""

    def __init__(
        self,
        layout: DataLayout,
        time_budget: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize repacker.

        Args:
            layout: Data directory layout
            time_budget: Seconds a run may spend before stopping early; None means unbounded
            clock: Returns the current UTC time, used to find today's era
            monotonic: Timer used for the time budget
        """
        self.layout = layout
        self.time_budget = time_budget
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._monotonic = monotonic

    def repack(self, tap_name: str) -> RepackResult:
        """Bundle all completed days of raw updates for one tap."""
        return self._repack(tap_name, self._deadline())

    def repack_all(self) -> List[RepackResult]:
        """Repack every tap under the data root, sharing one time budget."""
        deadline = self._deadline()
        results = []
        for tap_name in self.layout.list_taps():
            result = self._repack(tap_name, deadline)
            results.append(result)
            if result.aborted:
                break
        return results

    def _deadline(self) -> Optional[float]:
        if self.time_budget is None:
            return None
        return self._monotonic() + self.time_budget

    def _repack(self, tap_name: str, deadline: Optional[float]) -> RepackResult:
        result = RepackResult(tap_name=tap_name)
        today = self._clock().astimezone(timezone.utc).strftime(ERA_FORMAT)
        current: Optional[_OpenEra] = None
        unreadable_era: Optional[str] = None

        for path in self.layout.list_raw_updates(tap_name):
            label = era_of(path.name)
            if label >= today:
                break

            if deadline is not None and self._monotonic() > deadline:
                logger.warning(f"Repack of {tap_name} ran out of time at {path.name}")
                result.aborted = True
                break

            if label == unreadable_era:
                result.skipped.append(path.name)
                continue

            if current is None or current.label != label:
                if current is not None:
                    self._close_era(tap_name, current, result)
                current = self._open_era(tap_name, label)
                if current is None:
                    unreadable_era = label
                    result.skipped.append(path.name)
                    continue

            try:
                batch = read_batch(path)
            except TelemetryDecodeError as e:
                logger.warning(f"Skipping {path}: {e}")
                result.skipped.append(path.name)
                continue
            except StorageError as e:
                logger.error(f"Skipping {path}: {e}")
                result.skipped.append(path.name)
                continue

            current.report.append(batch)
            current.merged.append(path)

        if current is not None:
            self._close_era(tap_name, current, result)

        if result.bundles or result.skipped:
            logger.info(
                f"Repacked {tap_name}: {len(result.bundles)} bundles, {result.archived} files archived, "
                f"{len(result.skipped)} skipped"
            )
        return result

    def _open_era(self, tap_name: str, label: str) -> Optional[_OpenEra]:
        """Start an era, seeded with its existing bundle if one is on disk."""
        bundle = self.layout.bundle_path(tap_name, label)
        report = AggregateReport(tap_name=tap_name)
        if bundle.exists():
            try:
                report.append(read_batch(bundle))
            except (TelemetryDecodeError, StorageError) as e:
                logger.error(f"Leaving era {label} of {tap_name} alone, existing bundle unreadable: {e}")
                return None
            logger.debug(f"Extending existing bundle {bundle}")
        return _OpenEra(label, report)

    def _close_era(self, tap_name: str, era: _OpenEra, result: RepackResult) -> None:
        """Save the era's bundle, then move its merged raw files into the archive."""
        if not era.merged:
            return

        try:
            era.report.save(self.layout, era.label, comment=f"{tap_name} bundle for {era.label}")
        except StorageError as e:
            logger.error(f"Couldn't save bundle {era.label} for {tap_name}: {e}")
            result.skipped.extend(path.name for path in era.merged)
            return
        result.bundles.append(era.label)

        archive_dir = self.layout.archive_dir(tap_name)
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Couldn't create {archive_dir}: {e}")
            return
        for path in era.merged:
            try:
                os.replace(path, archive_dir / path.name)
            except OSError as e:
                logger.error(f"Couldn't archive {path}: {e}")
                continue
            result.archived += 1
