"""
Broker link for the notification bus.

The broker carries serialized notifications between processes. Every
process publishes to, and listens on, channels named
``<prefix>:<event name>``; Redis pub/sub fans each message out to all of
them. ``InMemoryBroker`` honours the same contract inside one process.
"""
import asyncio
from typing import AsyncIterator, Optional, Protocol, Tuple

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from .errors import BrokerError, PublishFailure
from .observability import broker_reconnects_total
from .retry import backoff_delay, retry_with_backoff

logger = structlog.get_logger(__name__)

BrokerMessage = Tuple[str, str]


class Broker(Protocol):
    prefix: str

    async def connect(self) -> None:
        ...

    async def publish(self, event_name: str, message: str) -> None:
        ...

    def messages(self) -> AsyncIterator[BrokerMessage]:
        ...

    async def close(self) -> None:
        ...


def channel_for(prefix: str, event_name: str) -> str:
    return f"{prefix}:{event_name}"


def event_from_channel(prefix: str, channel: str) -> str:
    return channel[len(prefix) + 1:] if channel.startswith(f"{prefix}:") else channel


class RedisBroker:
    """
    Redis pub/sub broker.

    ``messages()`` keeps a pattern subscription open for as long as the
    broker lives. When the connection drops it resubscribes with capped
    exponential backoff; events published during the gap are lost.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        prefix: str = "event_planner",
        reconnect_base_delay: float = 0.5,
        reconnect_max_delay: float = 30.0,
        client: Optional[redis.Redis] = None,
    ):
        self.host = host
        self.port = port
        self.prefix = prefix
        self.reconnect_base_delay = reconnect_base_delay
        self.reconnect_max_delay = reconnect_max_delay
        self.redis = client or redis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            decode_responses=True,
        )
        self.connected = False
        self._closed = False

    async def connect(self) -> None:
        """Ping the server, retrying a few times before giving up"""
        try:
            await retry_with_backoff(
                self.redis.ping,
                max_attempts=3,
                base_delay=self.reconnect_base_delay,
                max_delay=self.reconnect_max_delay,
                retry_on=(RedisError,),
            )
        except RedisError as e:
            self.connected = False
            raise BrokerError(f"Redis unreachable at {self.host}:{self.port}: {e}") from e
        self.connected = True
        logger.info("broker_connected", host=self.host, port=self.port)

    async def publish(self, event_name: str, message: str) -> None:
        try:
            await self.redis.publish(channel_for(self.prefix, event_name), message)
        except RedisError as e:
            self.connected = False
            raise PublishFailure(event_name, str(e)) from e

    async def messages(self) -> AsyncIterator[BrokerMessage]:
        attempt = 0
        while not self._closed:
            pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
            try:
                await pubsub.psubscribe(channel_for(self.prefix, "*"))
                self.connected = True
                attempt = 0
                logger.info("broker_subscribed", pattern=channel_for(self.prefix, "*"))
                async for message in pubsub.listen():
                    if message.get("type") != "pmessage":
                        continue
                    yield event_from_channel(self.prefix, message["channel"]), message["data"]
            except RedisError as e:
                self.connected = False
                if self._closed:
                    return
                delay = backoff_delay(attempt, self.reconnect_base_delay, self.reconnect_max_delay)
                attempt += 1
                broker_reconnects_total.inc()
                logger.warning("broker_reconnecting", attempt=attempt, delay=delay, error=str(e))
                await asyncio.sleep(delay)
            finally:
                await pubsub.aclose()

    async def close(self) -> None:
        self._closed = True
        self.connected = False
        await self.redis.aclose()
        logger.info("broker_closed")


_CLOSED = object()


class InMemoryBroker:
    """Single-process broker with the same contract as ``RedisBroker``"""

    def __init__(self, prefix: str = "event_planner"):
        self.prefix = prefix
        self.connected = False
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    async def connect(self) -> None:
        self.connected = True

    async def publish(self, event_name: str, message: str) -> None:
        if self._closed:
            raise PublishFailure(event_name, "broker closed")
        self._queue.put_nowait((event_name, message))

    async def messages(self) -> AsyncIterator[BrokerMessage]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def close(self) -> None:
        self._closed = True
        self.connected = False
        self._queue.put_nowait(_CLOSED)


def build_broker(settings) -> Broker:
    backend = settings.BROKER_BACKEND.lower()
    if backend == "memory":
        return InMemoryBroker(prefix=settings.BROKER_CHANNEL_PREFIX)
    if backend == "redis":
        return RedisBroker(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            prefix=settings.BROKER_CHANNEL_PREFIX,
            reconnect_base_delay=settings.BROKER_RECONNECT_BASE_DELAY,
            reconnect_max_delay=settings.BROKER_RECONNECT_MAX_DELAY,
        )
    raise ValueError(f"Unknown broker backend: {settings.BROKER_BACKEND}")
