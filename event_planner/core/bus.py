"""
Event Notification Bus

Decouples "a mutation happened" from "subscribers were told about it".

Publishing is fire-and-forget: ``publish()`` only enqueues. A single
publisher task hands queued notifications to the broker in order, and a
listener task fans everything the broker delivers out to the local
subscriptions of that event name. A process hears its own notifications
through the broker, exactly like its peers do.

Delivery is at-most-once with no replay. Each subscription buffers a
bounded number of payloads; when a subscriber falls behind, the
backpressure policy either drops its oldest buffered payload or
disconnects it. Neither the publisher nor other subscribers ever wait
on a slow subscriber.
"""
import asyncio
import json
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncGenerator, Deque, Dict, Optional, Set

import structlog

from .broker import Broker, build_broker
from .errors import BrokerError, PublishFailure
from .observability import (
    active_subscribers,
    notifications_delivered_total,
    notifications_dropped_total,
    notifications_published_total,
    publish_failures_total,
)

logger = structlog.get_logger(__name__)

USER_CREATED = "userCreated"
USER_UPDATED = "userUpdated"
EVENT_CREATED = "eventCreated"
EVENT_UPDATED = "eventUpdated"
LOCATION_CREATED = "locationCreated"
LOCATION_UPDATED = "locationUpdated"
PARTICIPANT_CREATED = "participantCreated"
PARTICIPANT_UPDATED = "participantUpdated"

EVENT_NAMES = (
    USER_CREATED,
    USER_UPDATED,
    EVENT_CREATED,
    EVENT_UPDATED,
    LOCATION_CREATED,
    LOCATION_UPDATED,
    PARTICIPANT_CREATED,
    PARTICIPANT_UPDATED,
)


class BackpressurePolicy(str, Enum):
    """What happens when a subscriber's buffer is full"""
    DROP_OLDEST = "drop_oldest"
    DISCONNECT = "disconnect"


class Subscription:
    """
    One live subscription to one event name.

    Async iterator over payloads; iteration ends once the subscription is
    closed, either by the consumer, by the disconnect policy, or by the bus
    shutting down.
    """

    def __init__(self, bus: "NotificationBus", event_name: str, max_buffer: int, policy: BackpressurePolicy):
        self.id = uuid.uuid4().hex
        self.event_name = event_name
        self.max_buffer = max_buffer
        self.policy = policy
        self.dropped = 0
        self.closed = False
        self._bus = bus
        self._buffer: Deque[Dict[str, Any]] = deque()
        self._ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self._buffer)

    def offer(self, payload: Dict[str, Any]) -> bool:
        """Buffer a payload without blocking. Returns False if it was not accepted."""
        if self.closed:
            return False
        if len(self._buffer) >= self.max_buffer:
            notifications_dropped_total.labels(event=self.event_name, policy=self.policy.value).inc()
            if self.policy is BackpressurePolicy.DISCONNECT:
                logger.warning("subscriber_disconnected_slow", subscription=self.id, event_name=self.event_name)
                self.close()
                return False
            self._buffer.popleft()
            self.dropped += 1
        self._buffer.append(payload)
        self._ready.set()
        return True

    async def get(self) -> Dict[str, Any]:
        return await self.__anext__()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._buffer.clear()
        self._ready.set()
        self._bus._unregister(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict[str, Any]:
        while not self._buffer:
            if self.closed:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()
        return self._buffer.popleft()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class NotificationBus:
    """Publish/subscribe over a shared broker"""

    def __init__(
        self,
        broker: Broker,
        publish_queue_size: int = 1000,
        subscriber_buffer_size: int = 100,
        backpressure_policy: BackpressurePolicy = BackpressurePolicy.DROP_OLDEST,
    ):
        self.broker = broker
        self.origin = uuid.uuid4().hex
        self.subscriber_buffer_size = subscriber_buffer_size
        self.backpressure_policy = BackpressurePolicy(backpressure_policy)
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=publish_queue_size)
        self._subscriptions: Dict[str, Set[Subscription]] = defaultdict(set)
        self._publisher_task: Optional[asyncio.Task] = None
        self._listener_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self):
        """Connect the broker and start the publisher and listener tasks"""
        if self.running:
            return
        try:
            await self.broker.connect()
        except BrokerError as e:
            # the listener keeps retrying; publishes fail until it is back
            logger.warning("broker_unavailable_at_start", error=e.message)
        self._publisher_task = asyncio.create_task(self._publish_worker())
        self._listener_task = asyncio.create_task(self._listen_worker())
        self.running = True
        logger.info("notification_bus_started", origin=self.origin, policy=self.backpressure_policy.value)

    async def stop(self):
        """Stop the tasks, close every subscription and the broker"""
        logger.info("notification_bus_stopping")
        self.running = False
        tasks = [task for task in (self._publisher_task, self._listener_task) if task]
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("bus_task_failed", error=str(result))
        self._publisher_task = None
        self._listener_task = None

        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                subscription.close()
        await self.broker.close()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        """Queue a notification. Never blocks and never raises."""
        try:
            self._outbox.put_nowait((event_name, payload))
        except asyncio.QueueFull:
            publish_failures_total.labels(event=event_name, reason="queue_full").inc()
            logger.warning("publish_dropped_queue_full", event_name=event_name, queue_size=self._outbox.maxsize)
            return False
        return True

    def _encode(self, event_name: str, payload: Dict[str, Any]) -> str:
        return json.dumps({
            "event": event_name,
            "payload": payload,
            "origin": self.origin,
            "published_at": datetime.now(timezone.utc).isoformat(),
        })

    async def _send(self, event_name: str, payload: Dict[str, Any]) -> bool:
        try:
            await self.broker.publish(event_name, self._encode(event_name, payload))
        except PublishFailure as e:
            publish_failures_total.labels(event=event_name, reason="broker").inc()
            logger.error("publish_failed", event_name=event_name, error=e.reason)
            return False
        notifications_published_total.labels(event=event_name).inc()
        return True

    async def _publish_worker(self):
        while True:
            event_name, payload = await self._outbox.get()
            try:
                await self._send(event_name, payload)
            except Exception as e:
                publish_failures_total.labels(event=event_name, reason="unexpected").inc()
                logger.error("publish_crashed", event_name=event_name, error=str(e), exc_info=True)
            finally:
                self._outbox.task_done()

    async def flush(self):
        """Wait until every queued notification has been handed to the broker"""
        await self._outbox.join()

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _listen_worker(self):
        while True:
            try:
                async for event_name, raw in self.broker.messages():
                    self._handle_message(event_name, raw)
                return
            except BrokerError as e:
                logger.error("listener_failed", error=e.message)
                await asyncio.sleep(1.0)
            except Exception as e:
                logger.error("listener_crashed", error=str(e), exc_info=True)
                await asyncio.sleep(1.0)

    def _handle_message(self, event_name: str, raw: str) -> None:
        try:
            message = json.loads(raw)
            payload = message["payload"]
            event_name = message.get("event", event_name)
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("malformed_notification", event_name=event_name, error=str(e))
            return
        self.dispatch(event_name, payload)

    def dispatch(self, event_name: str, payload: Dict[str, Any]) -> int:
        """Hand a payload to every local subscription of ``event_name``"""
        delivered = 0
        for subscription in list(self._subscriptions.get(event_name, ())):
            if subscription.offer(payload):
                delivered += 1
        if delivered:
            notifications_delivered_total.labels(event=event_name).inc(delivered)
        return delivered

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    def open_subscription(self, event_name: str) -> Subscription:
        """Register a subscription immediately and return it"""
        subscription = Subscription(self, event_name, self.subscriber_buffer_size, self.backpressure_policy)
        self._subscriptions[event_name].add(subscription)
        active_subscribers.labels(event=event_name).inc()
        logger.debug("subscription_opened", subscription=subscription.id, event_name=event_name)
        return subscription

    async def subscribe(self, event_name: str) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield payloads for ``event_name`` until the consumer goes away"""
        subscription = self.open_subscription(event_name)
        try:
            async for payload in subscription:
                yield payload
        finally:
            subscription.close()

    def _unregister(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event_name)
        if subscriptions and subscription in subscriptions:
            subscriptions.discard(subscription)
            if not subscriptions:
                del self._subscriptions[subscription.event_name]
            active_subscribers.labels(event=subscription.event_name).dec()
            logger.debug("subscription_closed", subscription=subscription.id, event_name=subscription.event_name)

    def subscriber_count(self, event_name: Optional[str] = None) -> int:
        if event_name is not None:
            return len(self._subscriptions.get(event_name, ()))
        return sum(len(s) for s in self._subscriptions.values())

    def stats(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "broker_connected": getattr(self.broker, "connected", None),
            "queued": self._outbox.qsize(),
            "subscribers": {name: len(subs) for name, subs in self._subscriptions.items()},
        }


def build_notification_bus(settings, broker: Optional[Broker] = None) -> NotificationBus:
    return NotificationBus(
        broker or build_broker(settings),
        publish_queue_size=settings.PUBLISH_QUEUE_SIZE,
        subscriber_buffer_size=settings.SUBSCRIBER_BUFFER_SIZE,
        backpressure_policy=BackpressurePolicy(settings.BACKPRESSURE_POLICY),
    )
