"""
Mutation Handlers
Create, update, delete and bulk-delete for each entity type.

Every handler commits to the store first and only then notifies the bus.
Notification is best-effort: a ``PublishFailure`` is logged and counted,
and the committed result is returned regardless.
"""
from typing import Any, Mapping, Optional, Protocol, Type, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..schemas import (
    EventUpdate,
    LocationUpdate,
    ParticipantUpdate,
    Record,
    UserUpdate,
)
from .errors import NotFoundError, PublishFailure, ValidationError
from .observability import mutations_total, publish_failures_total
from .store import Collection, EntityStore, new_id

logger = structlog.get_logger(__name__)

Payload = Union[Mapping[str, Any], BaseModel]


class Notifier(Protocol):
    def publish(self, event_name: str, payload: dict) -> bool:
        ...


def _as_dict(payload: Optional[Payload]) -> dict:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=True)
    return dict(payload)


def _error_list(exc: PydanticValidationError) -> list:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


class EntityMutations:
    """Mutation handlers for one collection"""

    def __init__(
        self,
        collection: Collection,
        update_model: Type[BaseModel],
        notifier: Optional[Notifier],
        created_event: Optional[str] = None,
        updated_event: Optional[str] = None,
    ):
        self.collection = collection
        self.update_model = update_model
        self.notifier = notifier
        self.created_event = created_event
        self.updated_event = updated_event

    @property
    def entity(self) -> str:
        return self.collection.entity

    def create(self, payload: Payload) -> Record:
        """Assign a fresh id, append the record and announce it"""
        data = _as_dict(payload)
        data["id"] = new_id()
        try:
            record = self.collection.model.model_validate(data)
        except PydanticValidationError as e:
            mutations_total.labels(entity=self.entity, operation="create", status="invalid").inc()
            raise ValidationError(self.entity, _error_list(e)) from e

        self.collection.insert(record)
        mutations_total.labels(entity=self.entity, operation="create", status="ok").inc()
        logger.info("record_created", entity=self.entity, id=record.id)

        self._notify(self.created_event, record)
        return record

    def update(self, record_id: str, payload: Optional[Payload] = None) -> Record:
        """Shallow-merge the supplied fields over the stored record"""
        try:
            changes = self.update_model.model_validate(_as_dict(payload)).model_dump(exclude_none=True)
        except PydanticValidationError as e:
            mutations_total.labels(entity=self.entity, operation="update", status="invalid").inc()
            raise ValidationError(self.entity, _error_list(e)) from e

        with self.collection.lock:
            try:
                current = self.collection.get(record_id)
            except NotFoundError:
                mutations_total.labels(entity=self.entity, operation="update", status="not_found").inc()
                raise
            merged = self.collection.model.model_validate({**current.model_dump(), **changes, "id": current.id})
            record = self.collection.replace(record_id, merged)

        mutations_total.labels(entity=self.entity, operation="update", status="ok").inc()
        logger.info("record_updated", entity=self.entity, id=record_id, fields=sorted(changes))

        self._notify(self.updated_event, record)
        return record

    def delete(self, record_id: str) -> Record:
        """Remove the record and return the pre-removal snapshot. Publishes nothing."""
        record = self.collection.remove_by_id(record_id)
        if record is None:
            mutations_total.labels(entity=self.entity, operation="delete", status="not_found").inc()
            raise NotFoundError(self.entity, record_id)
        mutations_total.labels(entity=self.entity, operation="delete", status="ok").inc()
        logger.info("record_deleted", entity=self.entity, id=record_id)
        return record

    def delete_all(self) -> int:
        """Empty the collection. Never fails, publishes nothing."""
        count = self.collection.clear()
        mutations_total.labels(entity=self.entity, operation="delete_all", status="ok").inc()
        logger.info("collection_cleared", entity=self.entity, removed=count)
        return count

    def _notify(self, event_name: Optional[str], record: Record) -> None:
        if not event_name or self.notifier is None:
            return
        try:
            self.notifier.publish(event_name, record.model_dump(by_alias=True))
        except PublishFailure as e:
            publish_failures_total.labels(event=event_name, reason="notify").inc()
            logger.warning("notify_failed", entity=self.entity, id=record.id, event_name=event_name, error=e.message)


class MutationHandlers:
    """Mutation handlers for every entity, sharing one store and notifier"""

    def __init__(self, store: EntityStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.users = EntityMutations(store.users, UserUpdate, notifier, "userCreated", "userUpdated")
        self.events = EntityMutations(store.events, EventUpdate, notifier, "eventCreated", "eventUpdated")
        self.locations = EntityMutations(store.locations, LocationUpdate, notifier, "locationCreated", "locationUpdated")
        self.participants = EntityMutations(
            store.participants, ParticipantUpdate, notifier, "participantCreated", "participantUpdated"
        )
