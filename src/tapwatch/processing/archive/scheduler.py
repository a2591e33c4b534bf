# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Periodic archival runner.

Runs the repack job on a fixed interval, off the event loop, separate from
the ingestion path.
"""

import asyncio
import logging
from typing import List, Optional

from .repack import Repacker, RepackResult

logger = logging.getLogger(__name__)


class ArchiveScheduler:
    """Runs ``Repacker.repack_all`` every ``interval`` seconds."""

    def __init__(self, repacker: Repacker, interval: float = 86400, enabled: bool = True):
        """
        Initialize archive scheduler.

        Args:
            repacker: Archival job for the data root
            interval: Seconds between runs
            enabled: When False, start() does nothing
        """
        self.repacker = repacker
        self.interval = interval
        self.enabled = enabled
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the archive scheduler."""
        if not self.enabled:
            logger.info("Archive scheduler is disabled, not starting")
            return

        if self.running:
            logger.warning("Archive scheduler already running")
            return

        logger.info(f"Starting archive scheduler (interval={self.interval}s)")
        self.running = True
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the archive scheduler gracefully."""
        if not self.running:
            return

        logger.info("Stopping archive scheduler...")
        self.running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Archive scheduler stopped")

    async def run(self) -> None:
        """Main scheduling loop."""
        while self.running:
            try:
                await self.process_once()
            except asyncio.CancelledError:
                logger.info("Archive scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"Error in archive run: {e}", exc_info=True)

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

    async def process_once(self) -> List[RepackResult]:
        """Run one repack pass over every tap."""
        logger.debug("Starting archive cycle")
        results = await asyncio.to_thread(self.repacker.repack_all)
        archived = sum(result.archived for result in results)
        logger.info(f"Archive cycle done: {len(results)} taps, {archived} files archived")
        return results
