# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Shared fixtures for Tapwatch tests."""

import json
from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest

from tapwatch.processing.aggregate.sample import Sample, TelemetryBatch
from tapwatch.processing.storage.layout import DataLayout

LUNARVILLE_PAYLOAD = {
    "FridgeName": "Lunarville-beta",
    "RawMassFull": 800000,
    "RawMassTare": 300000,
    "RawSamples": [
        {"PubFillRatio": 0.5, "RawFillRatio": 0.51, "RawMass": 555000, "Timestamp": "2018-09-13T05:10:37Z"},
        {"PubFillRatio": 0.5, "RawFillRatio": 0.5, "RawMass": 550000, "Timestamp": "2018-09-13T05:10:49Z"},
        {"PubFillRatio": 0.5, "RawFillRatio": 0.5, "RawMass": 550100, "Timestamp": "2018-09-13T05:11:01Z"},
        {"PubFillRatio": 0.5, "RawFillRatio": 0.5, "RawMass": 550200, "Timestamp": "2018-09-13T05:11:13Z"},
        {"PubFillRatio": 0.5, "RawFillRatio": 0.5, "RawMass": 551500, "Timestamp": "2018-09-13T05:11:25Z"},
        {"PubFillRatio": 0.5, "RawFillRatio": 0.5, "RawMass": 551700, "Timestamp": "2018-09-13T05:11:37Z"},
    ],
    "StableSamples": [
        {
            "PubFillRatio": 0.5033333333333333,
            "RawFillRatio": 0.5033333333333333,
            "RawMass": 551666,
            "Timestamp": "2018-09-13T05:11:37Z",
        }
    ],
}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_sample(when: datetime, fill: float = 0.5, raw_mass: int = 500000) -> Sample:
    return Sample(published_fill_ratio=fill, raw_fill_ratio=fill, raw_mass=raw_mass, timestamp=when)


def make_batch(
    tap_name: str = "tap-1",
    fine: Iterable[datetime] = (),
    stable: Iterable[datetime] = (),
    fill: float = 0.5,
    raw_mass_full: int = 800000,
    raw_mass_tare: int = 300000,
) -> TelemetryBatch:
    return TelemetryBatch(
        tap_name=tap_name,
        raw_mass_full=raw_mass_full,
        raw_mass_tare=raw_mass_tare,
        fine_samples=[make_sample(t, fill) for t in fine],
        stable_samples=[make_sample(t, fill) for t in stable],
    )


@pytest.fixture
def layout(tmp_path) -> DataLayout:
    """Data layout rooted in a fresh temp directory."""
    return DataLayout(tmp_path / "data")


@pytest.fixture
def lunarville_body() -> bytes:
    return json.dumps(LUNARVILLE_PAYLOAD).encode("utf-8")


@pytest.fixture
def batch_factory():
    """Factory building batches from timestamps."""
    return make_batch


@pytest.fixture
def write_raw(layout):
    """Write a raw update file for a tap with the given file stem."""
    from tapwatch.processing.storage.reports import write_batch

    def _write(tap_name: str, stem: str, stable: Optional[Iterable[datetime]] = None) -> None:
        when = datetime.strptime(stem, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
        batch = make_batch(tap_name, fine=[when], stable=list(stable) if stable is not None else [when])
        write_batch(layout.tap_dir(tap_name) / f"{stem}.json.gz", batch)

    return _write
