# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Per-tap status summaries computed from a report snapshot.
"""

import math
import statistics
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from .aggregate.sample import TelemetryBatch, format_timestamp

# Taps publish one stable sample roughly every five minutes.
DEFAULT_SAMPLE_PERIOD = timedelta(seconds=300)
MISSING_LEVELS = 12


@dataclass
class TapSummary:
    """Status of one tap over the retention window."""

    tap_name: str
    stable_count: int
    fine_count: int
    latest_fill: Optional[float] = None
    latest_timestamp: Optional[datetime] = None
    mean_fill: Optional[float] = None
    stddev_fill: Optional[float] = None
    cached_from: Optional[datetime] = None
    cached_to: Optional[datetime] = None
    missing_fraction: float = 1.0

    @property
    def cached_range(self) -> Optional[timedelta]:
        if self.cached_from is None or self.cached_to is None:
            return None
        return self.cached_to - self.cached_from

    @property
    def missing_level(self) -> int:
        """Missing fraction on a 0-12 scale, for gauges."""
        level = math.floor(MISSING_LEVELS * self.missing_fraction)
        return min(MISSING_LEVELS, max(0, level))

    def to_dict(self) -> Dict[str, Any]:
        def ts(value: Optional[datetime]) -> Optional[str]:
            return format_timestamp(value) if value is not None else None

        return {
            "tap": self.tap_name,
            "stable_samples": self.stable_count,
            "fine_samples": self.fine_count,
            "latest_fill": self.latest_fill,
            "latest_timestamp": ts(self.latest_timestamp),
            "mean_fill": self.mean_fill,
            "stddev_fill": self.stddev_fill,
            "cached_from": ts(self.cached_from),
            "cached_to": ts(self.cached_to),
            "cached_range": format_span(self.cached_range) if self.cached_range is not None else None,
            "missing_fraction": round(self.missing_fraction, 4),
        }


def format_span(span: timedelta) -> str:
    """Render a duration as ``<days>d<hours>h<minutes>m``."""
    minutes = int(span.total_seconds() // 60)
    days, minutes = divmod(minutes, 24 * 60)
    hours, minutes = divmod(minutes, 60)
    return f"{days}d{hours}h{minutes}m"


def summarize(
    batch: TelemetryBatch,
    retention: timedelta,
    sample_period: timedelta = DEFAULT_SAMPLE_PERIOD,
) -> TapSummary:
    """
    Summarize a sorted report snapshot.

    Args:
        batch: Snapshot from ``AggregateReport.snapshot()``
        retention: Retention window the report is trimmed to
        sample_period: Expected spacing of stable samples

    Returns:
        TapSummary for the tap
    """
    stable = batch.stable_samples
    summary = TapSummary(
        tap_name=batch.tap_name,
        stable_count=len(stable),
        fine_count=len(batch.fine_samples),
    )

    expected = int(retention / sample_period)
    if expected > 0:
        summary.missing_fraction = max(0.0, 1.0 - len(stable) / expected)

    if not stable:
        return summary

    fills = [sample.published_fill_ratio for sample in stable]
    summary.latest_fill = stable[-1].published_fill_ratio
    summary.latest_timestamp = stable[-1].timestamp
    summary.mean_fill = statistics.fmean(fills)
    summary.stddev_fill = statistics.pstdev(fills)
    summary.cached_from = stable[0].timestamp
    summary.cached_to = stable[-1].timestamp
    return summary
