"""Derived associations for events, computed on demand."""

from typing import List, Optional

from ..schemas import Event, Location, Participant, User
from .store import EntityStore


class RelationshipResolver:
    """
    Resolves Event -> User, Event -> Location and Event -> Participants.

    Foreign keys are not enforced, so a dangling reference resolves to
    ``None`` (or an empty list) instead of an error. Nothing is cached.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def user_for(self, event: Event) -> Optional[User]:
        return self.store.users.find_by_id(event.user_id)

    def location_for(self, event: Event) -> Optional[Location]:
        return self.store.locations.find_by_id(event.location_id)

    def participants_for(self, event: Event) -> List[Participant]:
        return self.store.participants.filter_by("event_id", event.id)
