# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Per-tap aggregate of fine and stable sample series.

Samples are appended unsorted and sorted lazily: every operation whose
result depends on order sorts first, at most once, guarded by a dirty flag.
"""

import bisect
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ...shared.errors import ReportInvariantError, ReportRetiredError
from ..storage.gzip_json import write_gzip_json
from ..storage.layout import DataLayout
from .sample import Sample, TelemetryBatch

logger = logging.getLogger(__name__)


def _by_time(sample: Sample) -> datetime:
    return sample.timestamp


def _decimate(samples: List[Sample], bucket: timedelta) -> List[Sample]:
    kept: List[Sample] = []
    anchor: Optional[datetime] = None
    for sample in samples:
        if anchor is None or sample.timestamp > anchor + bucket:
            kept.append(sample)
            anchor = sample.timestamp
    return kept


class AggregateReport:
    """
    Bounded, queryable recent history for one tap.

    Thread-safe: every public operation holds the report lock for its full
    duration. The lock is not re-entrant; acquiring it again from the thread
    that already holds it raises ``ReportInvariantError``.
    """

    def __init__(
        self,
        tap_name: str,
        raw_mass_full: int = 0,
        raw_mass_tare: int = 0,
        fine_samples: Optional[List[Sample]] = None,
        stable_samples: Optional[List[Sample]] = None,
    ):
        """
        Initialize an aggregate report.

        Args:
            tap_name: Sanitized tap identifier
            raw_mass_full: Raw mass reading of a full container
            raw_mass_tare: Raw mass reading of an empty container
            fine_samples: Initial high-frequency samples, any order
            stable_samples: Initial smoothed samples, any order
        """
        self.tap_name = tap_name
        self.raw_mass_full = raw_mass_full
        self.raw_mass_tare = raw_mass_tare
        self.fine_samples: List[Sample] = list(fine_samples or [])
        self.stable_samples: List[Sample] = list(stable_samples or [])

        self._sorted = not self.fine_samples and not self.stable_samples
        self._retired = False
        self._lock = threading.Lock()
        self._owner: Optional[int] = None

    @classmethod
    def from_batch(cls, batch: TelemetryBatch) -> "AggregateReport":
        """Create a fresh report seeded from a batch."""
        return cls(
            tap_name=batch.tap_name,
            raw_mass_full=batch.raw_mass_full,
            raw_mass_tare=batch.raw_mass_tare,
            fine_samples=batch.fine_samples,
            stable_samples=batch.stable_samples,
        )

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        me = threading.get_ident()
        if self._owner == me:
            raise ReportInvariantError(f"report for {self.tap_name} is already locked by this thread")
        with self._lock:
            self._owner = me
            try:
                yield
            finally:
                self._owner = None

    @property
    def is_sorted(self) -> bool:
        """Whether both series are known to be in timestamp order."""
        return self._sorted

    @property
    def retired(self) -> bool:
        """Whether the registry has dropped this report."""
        return self._retired

    def append(self, batch: TelemetryBatch) -> "AggregateReport":
        """
        Append a batch's samples to this report.

        Raw mass calibration values are replaced by the batch's values.

        Args:
            batch: Decoded update for the same tap

        Returns:
            This report, so callers treat new and existing reports alike

        Raises:
            ReportRetiredError: If the report was removed from the registry
        """
        with self._exclusive():
            if self._retired:
                raise ReportRetiredError(f"report for {self.tap_name} was retired")
            self.fine_samples.extend(batch.fine_samples)
            self.stable_samples.extend(batch.stable_samples)
            self.raw_mass_full = batch.raw_mass_full
            self.raw_mass_tare = batch.raw_mass_tare
            if batch.fine_samples or batch.stable_samples:
                self._sorted = False
        return self

    def _sort(self) -> None:
        """Stable sort of both series by timestamp. Requires the caller to hold the lock."""
        if self._sorted:
            return
        self.fine_samples.sort(key=_by_time)
        self.stable_samples.sort(key=_by_time)
        self._sorted = True

    def sort(self) -> None:
        """Sort both series by timestamp if they are not already sorted."""
        with self._exclusive():
            self._sort()

    def trim(self, max_count: int) -> None:
        """
        Keep only the newest ``max_count`` samples of each series.

        Args:
            max_count: Maximum samples retained per series
        """
        if max_count < 0:
            raise ValueError(f"max_count must be non-negative, got {max_count}")
        with self._exclusive():
            self._sort()
            if len(self.fine_samples) > max_count:
                self.fine_samples = self.fine_samples[len(self.fine_samples) - max_count:]
            if len(self.stable_samples) > max_count:
                self.stable_samples = self.stable_samples[len(self.stable_samples) - max_count:]

    def keep_since(self, max_age: timedelta, now: Optional[datetime] = None) -> None:
        """
        Drop samples at or before ``now - max_age``.

        Args:
            max_age: Retention window
            now: Reference instant, defaults to the current UTC time
        """
        cutoff = (now or datetime.now(timezone.utc)) - max_age
        with self._exclusive():
            self._sort()
            start = bisect.bisect_right(self.fine_samples, cutoff, key=_by_time)
            self.fine_samples = self.fine_samples[start:]
            start = bisect.bisect_right(self.stable_samples, cutoff, key=_by_time)
            self.stable_samples = self.stable_samples[start:]

    def rollup(self, bucket: timedelta) -> None:
        """
        Thin each series to at most one sample per ``bucket``.

        This is decimation, not averaging: a sample is kept only if it is more
        than ``bucket`` after the previously kept sample, and the first sample
        of each series is always kept.

        Args:
            bucket: Minimum spacing between kept samples
        """
        with self._exclusive():
            self._sort()
            self.fine_samples = _decimate(self.fine_samples, bucket)
            self.stable_samples = _decimate(self.stable_samples, bucket)

    def save(self, layout: DataLayout, era_label: str, comment: str = "") -> Path:
        """
        Write a compressed snapshot of this report as an era bundle.

        Replaces any existing bundle for the same era.

        Args:
            layout: Data directory layout
            era_label: Era label, e.g. ``20220101``
            comment: Free text stored in the gzip header

        Returns:
            Path of the written bundle
        """
        with self._exclusive():
            self._sort()
            payload = self._to_batch().to_dict()
            path = layout.bundle_path(self.tap_name, era_label)
            write_gzip_json(path, payload, comment=comment)
        logger.debug(f"Saved bundle {path}")
        return path

    def snapshot(self) -> TelemetryBatch:
        """Return a sorted copy of this report's data."""
        with self._exclusive():
            self._sort()
            return self._to_batch()

    def retire_if_empty(self) -> bool:
        """
        Mark the report retired when both series are empty.

        Returns:
            True if the report is now retired
        """
        with self._exclusive():
            if not self.fine_samples and not self.stable_samples:
                self._retired = True
            return self._retired

    def counts(self) -> Tuple[int, int]:
        """Return ``(fine_count, stable_count)``."""
        with self._exclusive():
            return len(self.fine_samples), len(self.stable_samples)

    def _to_batch(self) -> TelemetryBatch:
        return TelemetryBatch(
            tap_name=self.tap_name,
            raw_mass_full=self.raw_mass_full,
            raw_mass_tare=self.raw_mass_tare,
            fine_samples=list(self.fine_samples),
            stable_samples=list(self.stable_samples),
        )

    def __repr__(self) -> str:
        return (
            f"AggregateReport(tap_name={self.tap_name!r}, fine={len(self.fine_samples)}, "
            f"stable={len(self.stable_samples)}, sorted={self._sorted})"
        )


def append_report(report: Optional[AggregateReport], batch: TelemetryBatch) -> AggregateReport:
    """
    Append a batch to a report that may not exist yet.

    Args:
        report: Existing report, or None when the tap has no data yet
        batch: Decoded update

    Returns:
        The existing report, or a fresh one seeded from the batch
    """
    if report is None:
        return AggregateReport.from_batch(batch)
    return report.append(batch)
