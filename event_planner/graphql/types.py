"""GraphQL types for the event planner service."""

from typing import Any, Dict, List, Optional

import strawberry

from .. import schemas


@strawberry.type
class User:
    """User GraphQL type."""

    id: strawberry.ID
    username: str
    email: str

    @classmethod
    def from_record(cls, record: schemas.User) -> "User":
        return cls(id=strawberry.ID(record.id), username=record.username, email=record.email)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "User":
        return cls.from_record(schemas.User.model_validate(payload))


@strawberry.type
class Location:
    """Location GraphQL type."""

    id: strawberry.ID
    name: str
    desc: str
    lat: float
    lng: float

    @classmethod
    def from_record(cls, record: schemas.Location) -> "Location":
        return cls(
            id=strawberry.ID(record.id),
            name=record.name,
            desc=record.desc,
            lat=record.lat,
            lng=record.lng,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Location":
        return cls.from_record(schemas.Location.model_validate(payload))


@strawberry.type
class Participant:
    """Participant GraphQL type."""

    id: strawberry.ID
    user_id: strawberry.ID = strawberry.field(name="user_id")
    event_id: strawberry.ID = strawberry.field(name="event_id")

    @classmethod
    def from_record(cls, record: schemas.Participant) -> "Participant":
        return cls(
            id=strawberry.ID(record.id),
            user_id=strawberry.ID(record.user_id),
            event_id=strawberry.ID(record.event_id),
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Participant":
        return cls.from_record(schemas.Participant.model_validate(payload))


@strawberry.type
class Event:
    """Event GraphQL type. Relations are resolved on demand."""

    id: strawberry.ID
    title: str
    desc: str
    date: str
    from_: str = strawberry.field(name="from")
    to: str
    location_id: strawberry.ID = strawberry.field(name="location_id")
    user_id: strawberry.ID = strawberry.field(name="user_id")
    record: strawberry.Private[schemas.Event]

    @strawberry.field
    def user(self, info: strawberry.Info) -> Optional[User]:
        """Organizer, or null when the user no longer exists."""
        user = info.context["relations"].user_for(self.record)
        return User.from_record(user) if user else None

    @strawberry.field
    def location(self, info: strawberry.Info) -> Optional[Location]:
        """Venue, or null when the location no longer exists."""
        location = info.context["relations"].location_for(self.record)
        return Location.from_record(location) if location else None

    @strawberry.field
    def participants(self, info: strawberry.Info) -> List[Participant]:
        return [Participant.from_record(p) for p in info.context["relations"].participants_for(self.record)]

    @classmethod
    def from_record(cls, record: schemas.Event) -> "Event":
        return cls(
            id=strawberry.ID(record.id),
            title=record.title,
            desc=record.desc,
            date=record.date,
            from_=record.from_,
            to=record.to,
            location_id=strawberry.ID(record.location_id),
            user_id=strawberry.ID(record.user_id),
            record=record,
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Event":
        return cls.from_record(schemas.Event.model_validate(payload))


def input_to_dict(data) -> Dict[str, Any]:
    """Fields the client actually sent, keyed by python name."""
    return {
        key: value
        for key, value in vars(data).items()
        if value is not strawberry.UNSET and value is not None
    }


@strawberry.input
class UserCreateInput:
    username: str
    email: str


@strawberry.input
class UserUpdateInput:
    username: Optional[str] = strawberry.UNSET
    email: Optional[str] = strawberry.UNSET


@strawberry.input
class LocationCreateInput:
    name: str
    desc: str
    lat: float
    lng: float


@strawberry.input
class LocationUpdateInput:
    name: Optional[str] = strawberry.UNSET
    desc: Optional[str] = strawberry.UNSET
    lat: Optional[float] = strawberry.UNSET
    lng: Optional[float] = strawberry.UNSET


@strawberry.input
class EventCreateInput:
    title: str
    desc: str
    date: str
    from_: str = strawberry.field(name="from")
    to: str
    location_id: strawberry.ID = strawberry.field(name="location_id")
    user_id: strawberry.ID = strawberry.field(name="user_id")


@strawberry.input
class EventUpdateInput:
    title: Optional[str] = strawberry.UNSET
    desc: Optional[str] = strawberry.UNSET
    date: Optional[str] = strawberry.UNSET
    from_: Optional[str] = strawberry.field(name="from", default=strawberry.UNSET)
    to: Optional[str] = strawberry.UNSET
    location_id: Optional[strawberry.ID] = strawberry.field(name="location_id", default=strawberry.UNSET)
    user_id: Optional[strawberry.ID] = strawberry.field(name="user_id", default=strawberry.UNSET)


@strawberry.input
class ParticipantCreateInput:
    user_id: strawberry.ID = strawberry.field(name="user_id")
    event_id: strawberry.ID = strawberry.field(name="event_id")


@strawberry.input
class ParticipantUpdateInput:
    user_id: Optional[strawberry.ID] = strawberry.field(name="user_id", default=strawberry.UNSET)
    event_id: Optional[strawberry.ID] = strawberry.field(name="event_id", default=strawberry.UNSET)
