# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the on-disk layout.
"""

from datetime import datetime, timezone

import pytest

from tapwatch.processing.storage.layout import (
    DataLayout,
    era_of,
    is_usable_tap_name,
    sanitize_tap_name,
)


class TestTapNames:
    """Test tap name sanitizing."""

    @pytest.mark.parametrize(
        "raw, clean",
        [
            ("Lunarville-beta", "Lunarville-beta"),
            ("../../etc/passwd", "....etcpasswd"),
            ("tap one!", "tapone"),
            ("v1.2", "v1.2"),
        ],
    )
    def test_sanitize(self, raw, clean):
        assert sanitize_tap_name(raw) == clean

    @pytest.mark.parametrize("name", ["", ".", "..", "...."])
    def test_unusable(self, name):
        assert not is_usable_tap_name(name)

    def test_usable(self):
        assert is_usable_tap_name("....etcpasswd")


class TestDataLayout:
    """Test path resolution and listing."""

    def test_paths(self, tmp_path):
        layout = DataLayout(tmp_path)
        assert layout.chart_path("tap-1") == tmp_path / "tap-1.tsv"
        assert layout.bundle_path("tap-1", "20220101") == tmp_path / "tap-1" / "20220101.json.gz"
        assert layout.archive_dir("tap-1") == tmp_path / "tap-1" / "archive"
        when = datetime(2022, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert layout.raw_update_path("tap-1", when).name == "20220102030405.json.gz"

    def test_listing(self, tmp_path):
        layout = DataLayout(tmp_path)
        tap_dir = layout.tap_dir("tap-1")
        (tap_dir / "archive").mkdir(parents=True)
        for name in ["20220102000000.json.gz", "20220101.json.gz", "20220101120000.json.gz", "notes.txt"]:
            (tap_dir / name).write_bytes(b"")
        layout.chart_path("tap-1").write_text("")

        assert layout.list_taps() == ["tap-1"]
        assert [p.name for p in layout.list_raw_updates("tap-1")] == [
            "20220101120000.json.gz",
            "20220102000000.json.gz",
        ]
        assert [p.name for p in layout.list_stored_reports("tap-1")] == [
            "20220101.json.gz",
            "20220101120000.json.gz",
            "20220102000000.json.gz",
        ]

    def test_missing_root(self, tmp_path):
        layout = DataLayout(tmp_path / "nope")
        assert layout.list_taps() == []
        assert layout.list_raw_updates("tap-1") == []

    def test_era_of(self):
        assert era_of("20220101120000.json.gz") == "20220101"
