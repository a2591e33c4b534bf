# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Registry of live aggregate reports, one per tap.

The registry lock guards only the name-to-report mapping. Report contents
are guarded by each report's own lock, so taps never block each other.
Lock order is always registry then report.
"""

import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from ...shared.errors import ReportRetiredError
from ..storage.layout import DataLayout
from .report import AggregateReport
from .sample import TelemetryBatch

logger = logging.getLogger(__name__)


class TapRegistry:
    """
    Process-wide view of recent telemetry per tap.

    Construct one at startup and pass it to ingestion, rehydration and the
    status paths.
    """

    def __init__(self):
        self._reports: Dict[str, AggregateReport] = {}
        self._lock = threading.Lock()

    def get(self, tap_name: str) -> Optional[AggregateReport]:
        """Return the live report for a tap, or None if it has no data."""
        with self._lock:
            return self._reports.get(tap_name)

    def taps(self) -> List[str]:
        """Names of taps with live reports, sorted."""
        with self._lock:
            return sorted(self._reports)

    def append(self, batch: TelemetryBatch) -> AggregateReport:
        """
        Merge a batch into its tap's report, creating the report on first sight.

        Args:
            batch: Decoded update with a sanitized tap name

        Returns:
            The report now holding the batch's samples
        """
        while True:
            with self._lock:
                report = self._reports.get(batch.tap_name)
                if report is None:
                    report = AggregateReport.from_batch(batch)
                    self._reports[batch.tap_name] = report
                    logger.info(f"Registered new tap: {batch.tap_name}")
                    return report
            try:
                return report.append(batch)
            except ReportRetiredError:
                # Trimmed to empty and dropped after lookup; start a new report.
                continue

    def keep_since(
        self, tap_name: str, max_age: timedelta, now: Optional[datetime] = None
    ) -> Optional[AggregateReport]:
        """
        Apply the retention window to a tap, dropping the report if it empties.

        Returns:
            The surviving report, or None if the tap has no data
        """
        report = self.get(tap_name)
        if report is None:
            return None
        report.keep_since(max_age, now=now)
        return self._drop_if_empty(tap_name, report)

    def trim(self, tap_name: str, max_count: int) -> Optional[AggregateReport]:
        """Keep the newest ``max_count`` samples per series for a tap."""
        report = self.get(tap_name)
        if report is None:
            return None
        report.trim(max_count)
        return self._drop_if_empty(tap_name, report)

    def rollup(self, tap_name: str, bucket: timedelta) -> Optional[AggregateReport]:
        """Decimate a tap's series to one sample per bucket."""
        report = self.get(tap_name)
        if report is not None:
            report.rollup(bucket)
        return report

    def save(self, tap_name: str, layout: DataLayout, era_label: str, comment: str = "") -> Optional[Path]:
        """Write a tap's report as an era bundle; returns None if the tap has no data."""
        report = self.get(tap_name)
        if report is None:
            return None
        return report.save(layout, era_label, comment=comment)

    def snapshot(self, tap_name: str) -> Optional[TelemetryBatch]:
        """Sorted copy of a tap's data, or None if it has no data."""
        report = self.get(tap_name)
        if report is None:
            return None
        return report.snapshot()

    def _drop_if_empty(self, tap_name: str, report: AggregateReport) -> Optional[AggregateReport]:
        with self._lock:
            if self._reports.get(tap_name) is not report:
                return self._reports.get(tap_name)
            if report.retire_if_empty():
                del self._reports[tap_name]
                logger.info(f"Dropped tap {tap_name}: no samples left within retention")
                return None
        return report

    def __contains__(self, tap_name: object) -> bool:
        with self._lock:
            return tap_name in self._reports

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)
