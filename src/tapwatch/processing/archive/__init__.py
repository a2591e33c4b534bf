# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Archival of raw updates into per-day bundles."""

from .repack import Repacker, RepackResult
from .scheduler import ArchiveScheduler

__all__ = ["Repacker", "RepackResult", "ArchiveScheduler"]
