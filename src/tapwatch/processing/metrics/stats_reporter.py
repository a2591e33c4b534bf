# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Background task that logs ingestion stats once per interval.
"""

import asyncio
import logging
from typing import Optional

from .ingest_metrics import IngestMetrics

logger = logging.getLogger(__name__)


class StatsReporter:
    """Periodically logs fill statistics and ingestion counters, then resets them."""

    def __init__(self, metrics: IngestMetrics, interval: float = 3600):
        """
        Initialize stats reporter.

        Args:
            metrics: Shared ingestion counters
            interval: Seconds between reports
        """
        self.metrics = metrics
        self.interval = interval
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the reporting loop."""
        if self.running:
            logger.warning("Stats reporter already running")
            return

        logger.info(f"Starting stats reporter ({self.interval}s interval)")
        self.running = True
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the reporting loop."""
        if not self.running:
            return

        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stats reporter stopped")

    async def run(self) -> None:
        """Main reporting loop."""
        while self.running:
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            self.report_once()

    def report_once(self) -> None:
        """Log one report and reset the window."""
        drained = self.metrics.drain()
        fill = drained["fill"]
        counters = drained["metrics"]
        logger.info(
            f"Last interval stats: percent full min={fill.min_percent} max={fill.max_percent} "
            f"avg={fill.avg_percent} over {fill.count} samples; metrics {counters.to_dict()}"
        )
