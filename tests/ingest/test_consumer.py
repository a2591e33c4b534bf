# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the Redis stream consumer, with a mocked Redis client.
"""

import asyncio
from datetime import timedelta
from unittest.mock import Mock

import pytest
import redis

from tapwatch.processing.aggregate.registry import TapRegistry
from tapwatch.processing.ingest.consumer import TelemetryStreamConsumer
from tapwatch.processing.ingest.pipeline import IngestionPipeline, IngestResult
from tapwatch.shared.errors import AuthenticationError, IngestError


@pytest.fixture
def redis_client():
    return Mock(spec=redis.Redis)


@pytest.fixture
def pipeline():
    return Mock()


@pytest.fixture
def consumer(redis_client, pipeline):
    return TelemetryStreamConsumer(
        redis_client=redis_client,
        pipeline=pipeline,
        stream_name="tapwatch:updates",
        consumer_group="ingest",
        consumer_name="ingest-1",
        dlq_stream="tapwatch:dlq",
        block_ms=10,
    )


class TestConsumerGroup:
    """Test consumer group creation."""

    def test_creates_group(self, consumer, redis_client):
        consumer.ensure_consumer_group()
        redis_client.xgroup_create.assert_called_once_with("tapwatch:updates", "ingest", id="0", mkstream=True)

    def test_existing_group_is_fine(self, consumer, redis_client):
        redis_client.xgroup_create.side_effect = redis.ResponseError("BUSYGROUP Consumer Group name already exists")
        consumer.ensure_consumer_group()

    def test_other_errors_propagate(self, consumer, redis_client):
        redis_client.xgroup_create.side_effect = redis.ResponseError("WRONGTYPE")
        with pytest.raises(redis.ResponseError):
            consumer.ensure_consumer_group()


class TestReadMessages:
    """Test decoding of XREADGROUP replies."""

    def test_decodes_bytes(self, consumer, redis_client):
        redis_client.xreadgroup.return_value = [
            (b"tapwatch:updates", [(b"1-0", {b"api_key": b"secret", b"payload": b"{}"})]),
        ]
        assert consumer.read_messages() == [("1-0", {"api_key": "secret", "payload": "{}"})]

    def test_timeout_returns_empty(self, consumer, redis_client):
        redis_client.xreadgroup.return_value = []
        assert consumer.read_messages() == []


class TestProcessMessage:
    """Test acknowledgement and dead-lettering."""

    def test_success_is_acked(self, consumer, redis_client, pipeline):
        pipeline.handle.return_value = IngestResult("tap-1", "alice", 1, 1)
        result = consumer.process_message("1-0", {"api_key": "secret", "payload": "{}"})

        assert result.tap_name == "tap-1"
        pipeline.handle.assert_called_once_with("{}", "secret")
        redis_client.xack.assert_called_once_with("tapwatch:updates", "ingest", "1-0")
        redis_client.xadd.assert_not_called()

    def test_rejection_goes_to_dlq(self, consumer, redis_client, pipeline):
        pipeline.handle.side_effect = AuthenticationError("bad key")
        assert consumer.process_message("2-0", {"api_key": "x", "payload": "{}"}) is None

        stream, data = redis_client.xadd.call_args[0]
        assert stream == "tapwatch:dlq"
        assert data["status"] == 401
        assert data["error_type"] == "AuthenticationError"
        assert data["payload"] == "{}"
        redis_client.xack.assert_called_once_with("tapwatch:updates", "ingest", "2-0")

    def test_failure_goes_to_dlq(self, consumer, redis_client, pipeline):
        pipeline.handle.side_effect = IngestError("registry down")
        consumer.process_message("3-0", {"payload": "{}"})
        assert redis_client.xadd.call_args[0][1]["status"] == 500
        redis_client.xack.assert_called_once()


class TestRunLoop:
    """Test the async loop end to end."""

    def test_run_processes_until_stopped(self, consumer, redis_client, pipeline):
        pipeline.handle.return_value = IngestResult("tap-1", "alice", 1, 1)
        replies = iter([
            [(b"tapwatch:updates", [(b"1-0", {b"api_key": b"k", b"payload": b"{}"})])],
        ])

        def read(*args, **kwargs):
            try:
                return next(replies)
            except StopIteration:
                consumer.stop()
                return []

        redis_client.xreadgroup.side_effect = read
        asyncio.run(consumer.run())

        pipeline.handle.assert_called_once_with("{}", "k")
        redis_client.xack.assert_called_once_with("tapwatch:updates", "ingest", "1-0")

    def test_out_of_range_payload_is_dead_lettered(self, redis_client, layout):
        pipeline = IngestionPipeline(registry=TapRegistry(), layout=layout, retention=timedelta(days=31))
        consumer = TelemetryStreamConsumer(
            redis_client=redis_client,
            pipeline=pipeline,
            stream_name="tapwatch:updates",
            consumer_group="ingest",
            consumer_name="ingest-1",
            dlq_stream="tapwatch:dlq",
            block_ms=10,
        )
        payload = (
            b'{"FridgeName": "tap-1", "StableSamples": [{"PubFillRatio": 0.5, '
            b'"Timestamp": "0001-01-01T00:00:00+01:00"}]}'
        )
        replies = iter([
            [(b"tapwatch:updates", [(b"1-0", {b"payload": payload})])],
        ])

        def read(*args, **kwargs):
            try:
                return next(replies)
            except StopIteration:
                consumer.stop()
                return []

        redis_client.xreadgroup.side_effect = read
        asyncio.run(consumer.run())

        stream, data = redis_client.xadd.call_args[0]
        assert stream == "tapwatch:dlq"
        assert data["status"] == 400
        assert data["error_type"] == "TelemetryDecodeError"
        redis_client.xack.assert_called_once_with("tapwatch:updates", "ingest", "1-0")
