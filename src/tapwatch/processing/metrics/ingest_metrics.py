# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingestion counters and a rolling window of published fill ratios.

Counters are shared by concurrent ingestion threads and drained by the
stats reporter once per interval.
"""

import math
import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List


@dataclass
class MetricsSnapshot:
    """Point-in-time copy of the ingestion counters."""

    updates: int = 0
    data_points: int = 0
    api_logins: int = 0
    bad_logins: int = 0
    bad_json: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class FillStats:
    """Min / max / average published fill, in percent."""

    count: int
    min_percent: float
    max_percent: float
    avg_percent: float


def summarize_fill(ratios: Iterable[float]) -> FillStats:
    """Summarize published fill ratios as percentages rounded to 0.1."""
    values = list(ratios)
    if not values:
        return FillStats(count=0, min_percent=math.nan, max_percent=math.nan, avg_percent=math.nan)

    def pct(x: float) -> float:
        return round(x * 1000) / 10

    return FillStats(
        count=len(values),
        min_percent=pct(min(values)),
        max_percent=pct(max(values)),
        avg_percent=pct(sum(values) / len(values)),
    )


class IngestMetrics:
    """Thread-safe ingestion counters."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters = MetricsSnapshot()
        self._fill_ratios: List[float] = []

    def increment(self, name: str, amount: int = 1) -> None:
        """Increase a counter, e.g. ``increment("bad_json")``."""
        with self._lock:
            setattr(self._counters, name, getattr(self._counters, name) + amount)

    def record_samples(self, fill_ratios: Iterable[float]) -> None:
        """Record stable-sample fill ratios seen by ingestion."""
        ratios = list(fill_ratios)
        with self._lock:
            self._counters.data_points += len(ratios)
            self._fill_ratios.extend(ratios)

    def snapshot(self) -> MetricsSnapshot:
        """Copy the counters without resetting them."""
        with self._lock:
            return MetricsSnapshot(**self._counters.to_dict())

    def drain(self) -> Dict[str, Any]:
        """
        Copy and reset the counters and fill window.

        Returns:
            Dict with ``metrics`` (MetricsSnapshot) and ``fill`` (FillStats)
        """
        with self._lock:
            counters, self._counters = self._counters, MetricsSnapshot()
            ratios, self._fill_ratios = self._fill_ratios, []
        return {"metrics": counters, "fill": summarize_fill(ratios)}
