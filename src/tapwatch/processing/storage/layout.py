# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
On-disk layout of persisted telemetry.

    <root>/<tap>.tsv                         chart data
    <root>/<tap>/<yyyymmddhhmmss>.json.gz    raw updates
    <root>/<tap>/<yyyymmdd>.json.gz          era bundles
    <root>/<tap>/archive/<...>.json.gz       relocated raw updates
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

RAW_UPDATE_FORMAT = "%Y%m%d%H%M%S"
ERA_FORMAT = "%Y%m%d"
ERA_DIGITS = 8
FILE_SUFFIX = ".json.gz"
ARCHIVE_DIR_NAME = "archive"
CHART_SUFFIX = ".tsv"

RAW_UPDATE_PATTERN = re.compile(r"^\d{14}\.json\.gz$")
STORED_REPORT_PATTERN = re.compile(r"^\d{8,14}\.json\.gz$")

_DISALLOWED = re.compile(r"[^A-Za-z0-9.\-]")


def sanitize_tap_name(name: str) -> str:
    """Return ``name`` without any characters outside ``[A-Za-z0-9.-]``."""
    return _DISALLOWED.sub("", name)


def is_usable_tap_name(name: str) -> bool:
    """Whether a sanitized name can safely name a directory under the data root."""
    return bool(name) and name.strip(".") != ""


def era_of(file_name: str, digits: int = ERA_DIGITS) -> str:
    """Era label encoded in the leading digits of a stored file name."""
    return file_name[:digits]


class DataLayout:
    """Resolves every persisted path under one data root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def tap_dir(self, tap_name: str) -> Path:
        return self.root / tap_name

    def archive_dir(self, tap_name: str) -> Path:
        return self.tap_dir(tap_name) / ARCHIVE_DIR_NAME

    def chart_path(self, tap_name: str) -> Path:
        return self.root / f"{tap_name}{CHART_SUFFIX}"

    def bundle_path(self, tap_name: str, era_label: str) -> Path:
        return self.tap_dir(tap_name) / f"{era_label}{FILE_SUFFIX}"

    def raw_update_path(self, tap_name: str, when: Optional[datetime] = None) -> Path:
        when = when or datetime.now(timezone.utc)
        return self.tap_dir(tap_name) / f"{when.strftime(RAW_UPDATE_FORMAT)}{FILE_SUFFIX}"

    def list_taps(self) -> List[str]:
        """Names of all tap directories under the root, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(entry.name for entry in self.root.iterdir() if entry.is_dir())

    def list_raw_updates(self, tap_name: str) -> List[Path]:
        """Raw update files waiting in the tap directory, oldest first."""
        return self._list_matching(tap_name, RAW_UPDATE_PATTERN)

    def list_stored_reports(self, tap_name: str) -> List[Path]:
        """Bundles and raw updates in the tap directory, oldest first."""
        return self._list_matching(tap_name, STORED_REPORT_PATTERN)

    def _list_matching(self, tap_name: str, pattern: "re.Pattern[str]") -> List[Path]:
        directory = self.tap_dir(tap_name)
        if not directory.is_dir():
            return []
        # Zero-padded timestamps, so name order is chronological order.
        return sorted(
            (entry for entry in directory.iterdir() if entry.is_file() and pattern.match(entry.name)),
            key=lambda entry: entry.name,
        )
