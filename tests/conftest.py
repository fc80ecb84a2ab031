"""Shared fixtures for the event planner tests"""
import asyncio
from typing import Any, Dict, List, Tuple

import pytest
import pytest_asyncio

from event_planner.config import DEFAULT_FIXTURE_PATH, Settings
from event_planner.core.broker import InMemoryBroker
from event_planner.core.bus import NotificationBus
from event_planner.core.mutations import MutationHandlers
from event_planner.core.store import EntityStore


class RecordingNotifier:
    """Notifier that remembers what it was asked to publish"""

    def __init__(self):
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        self.published.append((event_name, payload))
        return True

    def names(self) -> List[str]:
        return [name for name, _ in self.published]


class HubBroker:
    """Broker that fans out to every connected peer, the way Redis pub/sub does"""

    def __init__(self, hub: list, prefix: str = "test"):
        self.hub = hub
        self.prefix = prefix
        self.connected = False
        self._queue: asyncio.Queue = asyncio.Queue()

    async def connect(self) -> None:
        self.hub.append(self)
        self.connected = True

    async def publish(self, event_name: str, message: str) -> None:
        for peer in list(self.hub):
            peer._queue.put_nowait((event_name, message))

    async def messages(self):
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        if self in self.hub:
            self.hub.remove(self)
        self.connected = False
        self._queue.put_nowait(None)


async def settle(bus: NotificationBus, delay: float = 0.05):
    """Let queued notifications reach the broker and fan out"""
    await bus.flush()
    await asyncio.sleep(delay)


@pytest.fixture
def test_settings():
    return Settings(BROKER_BACKEND="memory", LOG_LEVEL="WARNING")


@pytest.fixture
def store():
    """Store seeded from the packaged fixture"""
    return EntityStore.from_fixture(DEFAULT_FIXTURE_PATH)


@pytest.fixture
def empty_store():
    return EntityStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def handlers(empty_store, notifier):
    return MutationHandlers(empty_store, notifier=notifier)


@pytest_asyncio.fixture
async def bus():
    """Started bus on the in-memory broker"""
    bus = NotificationBus(InMemoryBroker(prefix="test"), subscriber_buffer_size=10)
    await bus.start()
    yield bus
    await bus.stop()
