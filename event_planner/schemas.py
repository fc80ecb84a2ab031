"""Pydantic schemas for the event planner records."""

from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _coerce_id(value):
    # fixture ids and foreign keys may be numeric
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


RecordId = Annotated[str, BeforeValidator(_coerce_id)]


class Record(BaseModel):
    """Stored entity. Records are frozen; updates build a replacement."""

    id: RecordId

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class User(Record):
    username: str = Field(..., description="Display name, not unique")
    email: str


class Location(Record):
    name: str
    desc: str = Field(..., description="Free-form description")
    lat: float = Field(..., description="Latitude, not range checked")
    lng: float = Field(..., description="Longitude, not range checked")


class Event(Record):
    title: str
    desc: str
    date: str
    from_: str = Field(..., alias="from", description="Start time")
    to: str = Field(..., description="End time")
    location_id: RecordId
    user_id: RecordId = Field(..., description="Organizer")


class Participant(Record):
    user_id: RecordId
    event_id: RecordId


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    desc: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    desc: Optional[str] = None
    date: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    location_id: Optional[RecordId] = None
    user_id: Optional[RecordId] = None

    model_config = ConfigDict(populate_by_name=True)


class ParticipantUpdate(BaseModel):
    user_id: Optional[RecordId] = None
    event_id: Optional[RecordId] = None
