"""
Entity Store
In-memory collections for users, events, locations and participants.

The store is created once at process start (optionally seeded from the
JSON fixture) and lives for the process lifetime. Nothing is written back.
"""
import json
import threading
from pathlib import Path
from typing import Dict, Generic, List, Optional, Type, TypeVar, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID

from ..schemas import Event, Location, Participant, Record, User
from .errors import NotFoundError

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)


def new_id() -> str:
    """Generate a fresh record id"""
    return str(ULID())


class Collection(Generic[R]):
    """
    Insertion-ordered collection keyed by id.

    Every operation runs under the collection's re-entrant lock, so callers
    that need a multi-step critical section (find, merge, replace) can hold
    ``collection.lock`` around the whole sequence.
    """

    def __init__(self, entity: str, model: Type[R]):
        self.entity = entity
        self.model = model
        self.lock = threading.RLock()
        self._records: Dict[str, R] = {}

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def list(self) -> List[R]:
        with self.lock:
            return list(self._records.values())

    def find_by_id(self, record_id: str) -> Optional[R]:
        with self.lock:
            return self._records.get(record_id)

    def get(self, record_id: str) -> R:
        record = self.find_by_id(record_id)
        if record is None:
            raise NotFoundError(self.entity, record_id)
        return record

    def insert(self, record: R) -> R:
        with self.lock:
            if record.id in self._records:
                raise ValueError(f"duplicate {self.entity} id '{record.id}'")
            self._records[record.id] = record
            return record

    def replace(self, record_id: str, record: R) -> R:
        with self.lock:
            if record_id not in self._records:
                raise NotFoundError(self.entity, record_id)
            # assigning to an existing key keeps its position
            self._records[record_id] = record
            return record

    def remove_by_id(self, record_id: str) -> Optional[R]:
        with self.lock:
            return self._records.pop(record_id, None)

    def clear(self) -> int:
        with self.lock:
            count = len(self._records)
            self._records.clear()
            return count

    def filter_by(self, field: str, value: str) -> List[R]:
        with self.lock:
            return [r for r in self._records.values() if getattr(r, field) == value]


class EntityStore:
    """Owns the four entity collections"""

    def __init__(self):
        self.users: Collection[User] = Collection("User", User)
        self.events: Collection[Event] = Collection("Event", Event)
        self.locations: Collection[Location] = Collection("Location", Location)
        self.participants: Collection[Participant] = Collection("Participant", Participant)

    def collections(self) -> Dict[str, Collection]:
        return {
            "users": self.users,
            "events": self.events,
            "locations": self.locations,
            "participants": self.participants,
        }

    def counts(self) -> Dict[str, int]:
        return {name: len(collection) for name, collection in self.collections().items()}

    def load(self, data: dict) -> None:
        """Seed the collections from a fixture mapping"""
        for name, collection in self.collections().items():
            for raw in data.get(name, []):
                collection.insert(collection.model.model_validate(raw))

    @classmethod
    def from_fixture(cls, path: Union[str, Path]) -> "EntityStore":
        store = cls()
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
            store.load(data)
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.error("fixture_load_failed", path=str(path), error=str(e))
            raise
        logger.info("fixture_loaded", path=str(path), **store.counts())
        return store
