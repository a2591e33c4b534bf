# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Redis Streams consumer feeding the ingestion pipeline.

Front ends enqueue updates as flat stream entries with an ``api_key`` and a
``payload`` field. Each entry goes through the pipeline in a worker thread.
Accepted entries are acknowledged; rejected or failed ones are copied to a
dead-letter stream with the error and status, then acknowledged.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import redis

from ...shared.errors import IngestRequestError, TapwatchError, TelemetryDecodeError
from .pipeline import IngestionPipeline, IngestResult

logger = logging.getLogger(__name__)

DLQ_MAXLEN = 1000


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class TelemetryStreamConsumer:
    """
    Consumer-group reader for queued tap updates.

    Features:
    - XREADGROUP with a bounded block so shutdown is never stuck
    - Pipeline calls off the event loop
    - Dead Letter Queue (DLQ) for rejected and failed updates
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        pipeline: IngestionPipeline,
        stream_name: str = "tapwatch:updates",
        consumer_group: str = "ingest",
        consumer_name: str = "ingest-1",
        dlq_stream: str = "tapwatch:dlq",
        block_ms: int = 1000,
        count: int = 10,
    ):
        """
        Initialize stream consumer.

        Args:
            redis_client: Redis client instance
            pipeline: Ingestion pipeline to apply updates with
            stream_name: Redis Stream name
            consumer_group: Consumer group name
            consumer_name: Consumer name (unique per instance)
            dlq_stream: Dead-letter stream name
            block_ms: Blocking timeout for XREADGROUP (ms)
            count: Maximum entries per read
        """
        self.redis_client = redis_client
        self.pipeline = pipeline
        self.stream_name = stream_name
        self.consumer_group = consumer_group
        self.consumer_name = consumer_name
        self.dlq_stream = dlq_stream
        self.block_ms = block_ms
        self.count = count
        self.running = False

    def ensure_consumer_group(self) -> None:
        """Ensure consumer group exists, create if not."""
        try:
            self.redis_client.xgroup_create(self.stream_name, self.consumer_group, id="0", mkstream=True)
            logger.info(f"Created consumer group {self.consumer_group}")
        except redis.ResponseError as e:
            if "BUSYGROUP" in str(e):
                logger.debug(f"Consumer group {self.consumer_group} already exists")
            else:
                raise

    def read_messages(self) -> List[Tuple[str, Dict[str, str]]]:
        """
        Read new entries with XREADGROUP.

        Returns:
            List of ``(message_id, fields)`` with decoded strings
        """
        messages = self.redis_client.xreadgroup(
            self.consumer_group,
            self.consumer_name,
            {self.stream_name: ">"},
            count=self.count,
            block=self.block_ms,
        )
        if not messages:
            return []

        result = []
        for _stream, entries in messages:
            for message_id, fields in entries:
                decoded = {_text(k): _text(v) for k, v in (fields or {}).items()}
                result.append((_text(message_id), decoded))
        return result

    def process_message(self, message_id: str, fields: Dict[str, str]) -> Optional[IngestResult]:
        """
        Apply one entry and acknowledge it.

        Returns:
            The pipeline result, or None if the entry went to the DLQ
        """
        try:
            result = self.pipeline.handle(fields.get("payload", ""), fields.get("api_key"))
        except (IngestRequestError, TelemetryDecodeError) as e:
            logger.warning(f"Rejected update {message_id}: {e}")
            self._dead_letter(message_id, fields, e)
            self._ack(message_id)
            return None
        except TapwatchError as e:
            logger.error(f"Failed update {message_id}: {e}")
            self._dead_letter(message_id, fields, e)
            self._ack(message_id)
            return None

        self._ack(message_id)
        logger.info(result.message)
        return result

    def _ack(self, message_id: str) -> None:
        try:
            self.redis_client.xack(self.stream_name, self.consumer_group, message_id)
        except redis.RedisError as e:
            logger.error(f"Failed to ACK message {message_id}: {e}")

    def _dead_letter(self, message_id: str, fields: Dict[str, str], error: TapwatchError) -> None:
        status = getattr(error, "status", None)
        dlq_data = {
            "message_id": message_id,
            "error": str(error),
            "error_type": type(error).__name__,
            "status": int(status) if status is not None else 500,
            "payload": fields.get("payload", ""),
        }
        try:
            self.redis_client.xadd(self.dlq_stream, dlq_data, maxlen=DLQ_MAXLEN, approximate=True)
            logger.warning(f"Sent message {message_id} to DLQ")
        except redis.RedisError as e:
            logger.error(f"Failed to send message {message_id} to DLQ: {e}")

    async def run(self) -> None:
        """
        Main consumer loop.

        Reads entries in a thread, then applies each one in a thread.
        """
        self.running = True
        await asyncio.to_thread(self.ensure_consumer_group)

        logger.info(f"Stream consumer started: {self.consumer_name} on {self.stream_name}")

        while self.running:
            try:
                messages = await asyncio.to_thread(self.read_messages)
                for message_id, fields in messages:
                    await asyncio.to_thread(self.process_message, message_id, fields)
                if not messages:
                    await asyncio.sleep(0.01)

            except asyncio.CancelledError:
                logger.info("Consumer cancelled")
                break
            except redis.ConnectionError as e:
                logger.error(f"Redis connection error: {e}")
                await asyncio.sleep(1)
            except redis.RedisError as e:
                logger.error(f"Error in consumer loop: {e}")
                await asyncio.sleep(1)

        logger.info("Stream consumer stopped")

    def stop(self) -> None:
        """Stop the consumer."""
        self.running = False
