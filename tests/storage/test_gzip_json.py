# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for gzip JSON persistence.
"""

import gzip

import pytest

from tapwatch.processing.storage.gzip_json import gzip_bytes, read_gzip_json, write_gzip_json
from tapwatch.shared.errors import StorageError, TelemetryDecodeError


class TestGzipBytes:
    """Test the hand-built gzip member."""

    def test_readable_by_gzip_module(self):
        data = b'{"hello": "world"}' * 100
        assert gzip.decompress(gzip_bytes(data, name="x.json", comment="note")) == data

    def test_header_carries_name_and_comment(self):
        blob = gzip_bytes(b"{}", name="20220101.json", comment="tap-1 bundle")
        assert blob[:2] == b"\x1f\x8b"
        assert b"20220101.json\x00" in blob
        assert b"tap-1 bundle\x00" in blob


class TestReadWrite:
    """Test file-level helpers."""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "nested" / "20220101.json.gz"
        write_gzip_json(path, {"FridgeName": "tap-1", "RawSamples": []}, comment="bundle")
        assert read_gzip_json(path) == {"FridgeName": "tap-1", "RawSamples": []}

    def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            read_gzip_json(tmp_path / "missing.json.gz")

    def test_not_gzip(self, tmp_path):
        path = tmp_path / "bad.json.gz"
        path.write_bytes(b"plain text")
        with pytest.raises(TelemetryDecodeError):
            read_gzip_json(path)

    def test_truncated(self, tmp_path):
        path = tmp_path / "cut.json.gz"
        path.write_bytes(gzip_bytes(b'{"a": 1}' * 50)[:20])
        with pytest.raises(TelemetryDecodeError):
            read_gzip_json(path)

    def test_not_json(self, tmp_path):
        path = tmp_path / "text.json.gz"
        path.write_bytes(gzip.compress(b"not json"))
        with pytest.raises(TelemetryDecodeError):
            read_gzip_json(path)
