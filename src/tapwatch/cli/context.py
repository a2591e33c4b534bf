# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
State shared by CLI commands.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..processing.aggregate.registry import TapRegistry
from ..processing.rehydrate import RehydrateResult, rehydrate
from ..processing.storage.layout import DataLayout
from ..shared.config import Config


@dataclass
class CliContext:
    """Resolved configuration plus display preferences."""

    config: Config
    default_format: str = "table"
    debug: bool = False

    @property
    def layout(self) -> DataLayout:
        return DataLayout(self.config.data_root)

    def load_registry(self, now: Optional[datetime] = None) -> Tuple[TapRegistry, RehydrateResult]:
        """Build a registry populated from the data root."""
        registry = TapRegistry()
        result = rehydrate(registry, self.layout, self.config.retention, now=now or datetime.now(timezone.utc))
        return registry, result
