# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for TapRegistry, including concurrent use.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from tapwatch.processing.aggregate.registry import TapRegistry

BASE = datetime(2022, 1, 1, tzinfo=timezone.utc)


def at(minute):
    return BASE + timedelta(minutes=minute)


class TestRegistryBasics:
    """Test lookup and lifecycle of reports."""

    def test_first_append_registers_tap(self, batch_factory):
        registry = TapRegistry()
        report = registry.append(batch_factory("tap-1", fine=[at(0)]))
        assert "tap-1" in registry
        assert registry.get("tap-1") is report
        assert registry.taps() == ["tap-1"]

    def test_second_append_extends(self, batch_factory):
        registry = TapRegistry()
        first = registry.append(batch_factory("tap-1", fine=[at(0)]))
        second = registry.append(batch_factory("tap-1", fine=[at(1)]))
        assert first is second
        assert first.counts() == (2, 0)

    def test_unknown_tap(self):
        registry = TapRegistry()
        assert registry.get("nope") is None
        assert registry.snapshot("nope") is None
        assert registry.keep_since("nope", timedelta(days=1)) is None
        assert registry.trim("nope", 1) is None
        assert registry.rollup("nope", timedelta(minutes=1)) is None

    def test_save(self, batch_factory, layout):
        registry = TapRegistry()
        assert registry.save("tap-1", layout, "20220101") is None
        assert not layout.bundle_path("tap-1", "20220101").exists()

        registry.append(batch_factory("tap-1", fine=[at(0)]))
        path = registry.save("tap-1", layout, "20220101", comment="test")
        assert path == layout.bundle_path("tap-1", "20220101")
        assert path.exists()

    def test_keep_since_drops_empty_report(self, batch_factory):
        registry = TapRegistry()
        registry.append(batch_factory("tap-1", fine=[at(0)]))
        assert registry.keep_since("tap-1", timedelta(minutes=1), now=at(60)) is None
        assert "tap-1" not in registry
        assert len(registry) == 0

    def test_append_after_drop_starts_fresh(self, batch_factory):
        registry = TapRegistry()
        old = registry.append(batch_factory("tap-1", fine=[at(0)]))
        registry.trim("tap-1", 0)
        assert old.retired

        new = registry.append(batch_factory("tap-1", fine=[at(5)]))
        assert new is not old
        assert new.counts() == (1, 0)

    def test_rollup(self, batch_factory):
        registry = TapRegistry()
        registry.append(batch_factory("tap-1", fine=[at(m) for m in range(10)]))
        report = registry.rollup("tap-1", timedelta(minutes=3))
        assert report.counts() == (3, 0)


class TestRegistryConcurrency:
    """Test concurrent appends across and within taps."""

    def test_concurrent_appends_lose_nothing(self, batch_factory):
        registry = TapRegistry()
        taps = [f"tap-{i}" for i in range(4)]

        def worker(n):
            tap = taps[n % len(taps)]
            registry.append(batch_factory(tap, fine=[at(n)], stable=[at(n)]))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(400)))

        assert registry.taps() == sorted(taps)
        for tap in taps:
            fine, stable = registry.get(tap).counts()
            assert fine == 100
            assert stable == 100
            snapshot = registry.snapshot(tap)
            assert [s.timestamp for s in snapshot.fine_samples] == sorted(s.timestamp for s in snapshot.fine_samples)

    def test_append_racing_with_drop(self, batch_factory):
        registry = TapRegistry()
        stop = threading.Event()
        appended = []

        def trimmer():
            while not stop.is_set():
                registry.trim("tap-1", 0)

        thread = threading.Thread(target=trimmer)
        thread.start()
        try:
            for n in range(300):
                report = registry.append(batch_factory("tap-1", fine=[at(n)]))
                appended.append(report)
        finally:
            stop.set()
            thread.join()

        assert len(appended) == 300
        final = registry.append(batch_factory("tap-1", fine=[at(999)]))
        assert not final.retired
        assert registry.get("tap-1") is final
