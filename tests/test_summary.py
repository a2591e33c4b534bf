# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for tap status summaries.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tapwatch.processing.aggregate.sample import Sample, TelemetryBatch
from tapwatch.processing.summary import format_span, summarize

BASE = datetime(2022, 1, 1, tzinfo=timezone.utc)


def batch_with_fills(fills, spacing=timedelta(minutes=5)):
    samples = [
        Sample(published_fill_ratio=f, raw_fill_ratio=f, raw_mass=0, timestamp=BASE + i * spacing)
        for i, f in enumerate(fills)
    ]
    return TelemetryBatch(tap_name="tap-1", stable_samples=samples)


class TestSummarize:
    """Test summary statistics."""

    def test_statistics(self):
        summary = summarize(batch_with_fills([0.2, 0.4, 0.6]), retention=timedelta(days=1))
        assert summary.stable_count == 3
        assert summary.latest_fill == 0.6
        assert summary.latest_timestamp == BASE + timedelta(minutes=10)
        assert summary.mean_fill == pytest.approx(0.4)
        assert summary.stddev_fill == pytest.approx(0.16329931618554522)
        assert summary.cached_range == timedelta(minutes=10)

    def test_missing_fraction(self):
        # One day at five minutes per sample is 288 expected samples.
        summary = summarize(batch_with_fills([0.5] * 72), retention=timedelta(days=1))
        assert summary.missing_fraction == pytest.approx(0.75)
        assert summary.missing_level == 9

    def test_overfull_is_not_negative(self):
        summary = summarize(batch_with_fills([0.5] * 400, spacing=timedelta(minutes=1)), retention=timedelta(days=1))
        assert summary.missing_fraction == 0.0
        assert summary.missing_level == 0

    def test_empty(self):
        summary = summarize(TelemetryBatch(tap_name="tap-1"), retention=timedelta(days=31))
        assert summary.latest_fill is None
        assert summary.cached_range is None
        assert summary.missing_fraction == 1.0
        assert summary.missing_level == 12
        assert summary.to_dict()["cached_range"] is None

    def test_to_dict(self):
        data = summarize(batch_with_fills([0.5, 0.5]), retention=timedelta(days=1)).to_dict()
        assert data["tap"] == "tap-1"
        assert data["latest_timestamp"] == "2022-01-01T00:05:00Z"
        assert data["cached_range"] == "0d0h5m"


class TestFormatSpan:
    """Test duration rendering."""

    @pytest.mark.parametrize(
        "span, text",
        [
            (timedelta(0), "0d0h0m"),
            (timedelta(days=2, hours=3, minutes=4, seconds=59), "2d3h4m"),
            (timedelta(hours=25), "1d1h0m"),
        ],
    )
    def test_format_span(self, span, text):
        assert format_span(span) == text
