"""
Tests for the broker link and its backoff policy
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from event_planner.config import Settings
from event_planner.core.broker import (
    InMemoryBroker,
    RedisBroker,
    build_broker,
    channel_for,
    event_from_channel,
)
from event_planner.core.errors import BrokerError, PublishFailure
from event_planner.core.retry import backoff_delay, retry_with_backoff


class TestBackoff:

    def test_delay_grows_exponentially(self):
        delays = [backoff_delay(attempt, base_delay=0.5, max_delay=100.0, jitter=False) for attempt in range(4)]
        assert delays == [0.5, 1.0, 2.0, 4.0]

    def test_delay_is_capped(self):
        assert backoff_delay(20, base_delay=0.5, max_delay=30.0) == 30.0

    def test_jitter_stays_within_bounds(self):
        for _ in range(50):
            delay = backoff_delay(2, base_delay=1.0, max_delay=100.0)
            assert 4.0 <= delay <= 5.0

    @pytest.mark.asyncio
    async def test_retry_succeeds_after_transient_errors(self):
        calls = AsyncMock(side_effect=[RedisConnectionError("down"), RedisConnectionError("down"), "PONG"])

        with patch("event_planner.core.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await retry_with_backoff(calls, max_attempts=3)

        assert result == "PONG"
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_reraises_after_last_attempt(self):
        calls = AsyncMock(side_effect=RedisConnectionError("down"))

        with patch("event_planner.core.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RedisConnectionError):
                await retry_with_backoff(calls, max_attempts=2)

        assert calls.await_count == 2


class TestRedisBroker:

    def _broker(self, client):
        return RedisBroker(prefix="test", client=client)

    @pytest.mark.asyncio
    async def test_publish_uses_prefixed_channel(self):
        client = MagicMock()
        client.publish = AsyncMock(return_value=1)
        broker = self._broker(client)

        await broker.publish("userCreated", "{}")

        client.publish.assert_awaited_once_with("test:userCreated", "{}")

    @pytest.mark.asyncio
    async def test_publish_error_becomes_publish_failure(self):
        client = MagicMock()
        client.publish = AsyncMock(side_effect=RedisConnectionError("Connection refused"))
        broker = self._broker(client)

        with pytest.raises(PublishFailure) as exc_info:
            await broker.publish("userCreated", "{}")

        assert exc_info.value.event_name == "userCreated"
        assert broker.connected is False

    @pytest.mark.asyncio
    async def test_connect_failure_raises_broker_error(self):
        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("Connection refused"))
        broker = self._broker(client)

        with patch("event_planner.core.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(BrokerError):
                await broker.connect()

        assert client.ping.await_count == 3

    @pytest.mark.asyncio
    async def test_messages_reconnect_with_backoff(self):
        client = MagicMock()
        broken = MagicMock()
        broken.psubscribe = AsyncMock(side_effect=RedisConnectionError("down"))
        broken.aclose = AsyncMock()

        async def _listen():
            yield {"type": "pmessage", "channel": "test:userCreated", "data": '{"payload": {}}'}

        healthy = MagicMock()
        healthy.psubscribe = AsyncMock()
        healthy.listen = _listen
        healthy.aclose = AsyncMock()
        client.pubsub = MagicMock(side_effect=[broken, broken, healthy])
        broker = self._broker(client)

        with patch("event_planner.core.broker.asyncio.sleep", new=AsyncMock()) as sleep:
            stream = broker.messages()
            message = await asyncio.wait_for(stream.__anext__(), timeout=1.0)
            await stream.aclose()

        assert message == ("userCreated", '{"payload": {}}')
        assert sleep.await_count == 2
        first_delay, second_delay = (call.args[0] for call in sleep.await_args_list)
        assert first_delay <= second_delay
        healthy.psubscribe.assert_awaited_once_with("test:*")
        assert broken.aclose.await_count == 2


@pytest.mark.asyncio
async def test_in_memory_broker_round_trip():
    broker = InMemoryBroker()
    await broker.connect()
    await broker.publish("userCreated", "hello")
    await broker.close()

    received = [message async for message in broker.messages()]

    assert received == [("userCreated", "hello")]
    with pytest.raises(PublishFailure):
        await broker.publish("userCreated", "late")


def test_channel_names():
    assert channel_for("event_planner", "userCreated") == "event_planner:userCreated"
    assert event_from_channel("event_planner", "event_planner:userCreated") == "userCreated"


def test_build_broker_from_settings():
    assert isinstance(build_broker(Settings(BROKER_BACKEND="memory")), InMemoryBroker)
    assert isinstance(build_broker(Settings(BROKER_BACKEND="redis")), RedisBroker)
    with pytest.raises(ValueError):
        build_broker(Settings(BROKER_BACKEND="carrier-pigeon"))
