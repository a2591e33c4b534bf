# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main server for the Tapwatch telemetry engine.

Orchestrates startup rehydration, the ingestion stream consumer, the archive
scheduler, hourly stats and graceful shutdown.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

import redis

from ..shared.config import Config
from .aggregate.registry import TapRegistry
from .archive.repack import Repacker
from .archive.scheduler import ArchiveScheduler
from .ingest.auth import UserDirectory
from .ingest.consumer import TelemetryStreamConsumer
from .ingest.pipeline import IngestionPipeline
from .metrics.ingest_metrics import IngestMetrics
from .metrics.stats_reporter import StatsReporter
from .rehydrate import rehydrate
from .storage.layout import DataLayout

logger = logging.getLogger(__name__)


class TelemetryServer:
    """
    Main server for tap telemetry.

    Manages:
    - Registry rehydration from disk
    - Redis connection and stream consumer
    - Archive scheduler
    - Hourly stats reporter
    - Graceful shutdown
    """

    def __init__(self, config: Optional[Config] = None, redis_client: Optional[redis.Redis] = None):
        """
        Initialize telemetry server.

        Args:
            config: Configuration instance (creates default if not provided)
            redis_client: Redis client to use instead of one built from config
        """
        self.config = config or Config()
        self.layout = DataLayout(self.config.data_root)
        self.registry = TapRegistry()
        self.metrics = IngestMetrics()

        self.redis_client: Optional[redis.Redis] = redis_client
        self.pipeline: Optional[IngestionPipeline] = None
        self.consumer: Optional[TelemetryStreamConsumer] = None
        self.scheduler: Optional[ArchiveScheduler] = None
        self.stats_reporter: Optional[StatsReporter] = None
        self._stopped: Optional[asyncio.Event] = None
        self.running = False

    def _initialize_pipeline(self) -> None:
        """Build the ingestion pipeline and its credential check."""
        authenticator = None
        if self.config.users_file:
            authenticator = UserDirectory.load(self.config.users_file)
        else:
            logger.warning("No users file configured, accepting updates without authentication")

        self.pipeline = IngestionPipeline(
            registry=self.registry,
            layout=self.layout,
            retention=self.config.retention,
            chart_max_lines=self.config.chart_max_lines,
            authenticator=authenticator,
            metrics=self.metrics,
        )

    def _initialize_redis(self) -> None:
        """Initialize Redis connection."""
        if self.redis_client is None:
            logger.info("Initializing Redis connection")
            self.redis_client = redis.Redis(
                host=self.config.redis_host,
                port=self.config.redis_port,
                db=self.config.redis_db,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_socket_connect_timeout,
                decode_responses=False,
            )

        try:
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.ConnectionError as e:
            raise RuntimeError(f"Failed to connect to Redis: {e}") from e

    def _initialize_consumer(self) -> None:
        """Initialize stream consumer."""
        self.consumer = TelemetryStreamConsumer(
            redis_client=self.redis_client,
            pipeline=self.pipeline,
            stream_name=self.config.stream_name,
            consumer_group=self.config.stream_consumer_group,
            consumer_name=f"{self.config.stream_consumer_group}-1",
            dlq_stream=self.config.stream_dlq,
            block_ms=self.config.stream_block_ms,
            count=self.config.stream_count,
        )
        logger.info("Stream consumer initialized")

    async def start(self) -> None:
        """Start the server and block until stop() is called."""
        if self.running:
            logger.warning("Server already running")
            return

        logger.info(f"Starting Tapwatch server (data root {self.layout.root})...")
        self._stopped = asyncio.Event()

        try:
            self._initialize_pipeline()

            await asyncio.to_thread(rehydrate, self.registry, self.layout, self.config.retention)

            self.scheduler = ArchiveScheduler(
                Repacker(self.layout, time_budget=self.config.archive_time_budget_seconds),
                interval=self.config.archive_interval_seconds,
                enabled=self.config.archive_enabled,
            )
            self.stats_reporter = StatsReporter(self.metrics, interval=self.config.stats_interval_seconds)

            if self.config.stream_enabled:
                self._initialize_redis()
                self._initialize_consumer()

            self.running = True

            await self.scheduler.start()
            await self.stats_reporter.start()

            if self.consumer:
                await self.consumer.run()
            else:
                await self._stopped.wait()

        except Exception as e:
            logger.error(f"Failed to start server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self.running:
            return

        logger.info("Stopping server...")
        self.running = False

        if self.consumer:
            self.consumer.stop()

        if self.scheduler:
            await self.scheduler.stop()

        if self.stats_reporter:
            await self.stats_reporter.stop()

        if self.redis_client:
            self.redis_client.close()

        if self._stopped:
            self._stopped.set()

        logger.info("Server stopped")

    async def run(self) -> None:
        """Run the server (alias for start)."""
        await self.start()


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


async def main(config: Optional[Config] = None) -> None:
    """Main entry point."""
    config = config or Config()
    config.validate()
    setup_logging(config.log_level)

    server = TelemetryServer(config)

    loop = asyncio.get_running_loop()

    def request_shutdown() -> None:
        logger.info("Received shutdown signal")
        asyncio.create_task(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown)

    try:
        await server.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
