"""GraphQL resolvers for the event planner service."""

from typing import AsyncGenerator, List

import strawberry

from ..core import bus as notifications
from .types import (
    Event,
    EventCreateInput,
    EventUpdateInput,
    Location,
    LocationCreateInput,
    LocationUpdateInput,
    Participant,
    ParticipantCreateInput,
    ParticipantUpdateInput,
    User,
    UserCreateInput,
    UserUpdateInput,
    input_to_dict,
)


@strawberry.type
class Query:
    """GraphQL Query root."""

    @strawberry.field
    def users(self, info: strawberry.Info) -> List[User]:
        return [User.from_record(u) for u in info.context["store"].users.list()]

    @strawberry.field
    def user(self, id: strawberry.ID, info: strawberry.Info) -> User:
        """Get a user by ID; NOT_FOUND error when absent."""
        return User.from_record(info.context["store"].users.get(id))

    @strawberry.field
    def events(self, info: strawberry.Info) -> List[Event]:
        return [Event.from_record(e) for e in info.context["store"].events.list()]

    @strawberry.field
    def event(self, id: strawberry.ID, info: strawberry.Info) -> Event:
        return Event.from_record(info.context["store"].events.get(id))

    @strawberry.field
    def locations(self, info: strawberry.Info) -> List[Location]:
        return [Location.from_record(loc) for loc in info.context["store"].locations.list()]

    @strawberry.field
    def location(self, id: strawberry.ID, info: strawberry.Info) -> Location:
        return Location.from_record(info.context["store"].locations.get(id))

    @strawberry.field
    def participants(self, info: strawberry.Info) -> List[Participant]:
        return [Participant.from_record(p) for p in info.context["store"].participants.list()]

    @strawberry.field
    def participant(self, id: strawberry.ID, info: strawberry.Info) -> Participant:
        return Participant.from_record(info.context["store"].participants.get(id))


@strawberry.type
class Mutation:
    """GraphQL Mutation root."""

    # Users

    @strawberry.mutation
    def create_user(self, input: UserCreateInput, info: strawberry.Info) -> User:
        return User.from_record(info.context["mutations"].users.create(input_to_dict(input)))

    @strawberry.mutation
    def update_user(self, id: strawberry.ID, input: UserUpdateInput, info: strawberry.Info) -> User:
        return User.from_record(info.context["mutations"].users.update(id, input_to_dict(input)))

    @strawberry.mutation
    def delete_user(self, id: strawberry.ID, info: strawberry.Info) -> User:
        return User.from_record(info.context["mutations"].users.delete(id))

    @strawberry.mutation
    def delete_all_users(self, info: strawberry.Info) -> int:
        return info.context["mutations"].users.delete_all()

    # Events

    @strawberry.mutation
    def create_event(self, input: EventCreateInput, info: strawberry.Info) -> Event:
        return Event.from_record(info.context["mutations"].events.create(input_to_dict(input)))

    @strawberry.mutation
    def update_event(self, id: strawberry.ID, input: EventUpdateInput, info: strawberry.Info) -> Event:
        return Event.from_record(info.context["mutations"].events.update(id, input_to_dict(input)))

    @strawberry.mutation
    def delete_event(self, id: strawberry.ID, info: strawberry.Info) -> Event:
        return Event.from_record(info.context["mutations"].events.delete(id))

    @strawberry.mutation
    def delete_all_events(self, info: strawberry.Info) -> int:
        return info.context["mutations"].events.delete_all()

    # Locations

    @strawberry.mutation
    def create_location(self, input: LocationCreateInput, info: strawberry.Info) -> Location:
        return Location.from_record(info.context["mutations"].locations.create(input_to_dict(input)))

    @strawberry.mutation
    def update_location(self, id: strawberry.ID, input: LocationUpdateInput, info: strawberry.Info) -> Location:
        return Location.from_record(info.context["mutations"].locations.update(id, input_to_dict(input)))

    @strawberry.mutation
    def delete_location(self, id: strawberry.ID, info: strawberry.Info) -> Location:
        return Location.from_record(info.context["mutations"].locations.delete(id))

    @strawberry.mutation
    def delete_all_locations(self, info: strawberry.Info) -> int:
        return info.context["mutations"].locations.delete_all()

    # Participants

    @strawberry.mutation
    def create_participant(self, input: ParticipantCreateInput, info: strawberry.Info) -> Participant:
        return Participant.from_record(info.context["mutations"].participants.create(input_to_dict(input)))

    @strawberry.mutation
    def update_participant(
        self, id: strawberry.ID, input: ParticipantUpdateInput, info: strawberry.Info
    ) -> Participant:
        return Participant.from_record(info.context["mutations"].participants.update(id, input_to_dict(input)))

    @strawberry.mutation
    def delete_participant(self, id: strawberry.ID, info: strawberry.Info) -> Participant:
        return Participant.from_record(info.context["mutations"].participants.delete(id))

    @strawberry.mutation
    def delete_all_participants(self, info: strawberry.Info) -> int:
        return info.context["mutations"].participants.delete_all()


@strawberry.type
class Subscription:
    """GraphQL Subscription root. One stream per created/updated event."""

    @strawberry.subscription
    async def user_created(self, info: strawberry.Info) -> AsyncGenerator[User, None]:
        async with info.context["bus"].open_subscription(notifications.USER_CREATED) as subscription:
            async for payload in subscription:
                yield User.from_payload(payload)

    @strawberry.subscription
    async def user_updated(self, info: strawberry.Info) -> AsyncGenerator[User, None]:
        async with info.context["bus"].open_subscription(notifications.USER_UPDATED) as subscription:
            async for payload in subscription:
                yield User.from_payload(payload)

    @strawberry.subscription
    async def event_created(self, info: strawberry.Info) -> AsyncGenerator[Event, None]:
        async with info.context["bus"].open_subscription(notifications.EVENT_CREATED) as subscription:
            async for payload in subscription:
                yield Event.from_payload(payload)

    @strawberry.subscription
    async def event_updated(self, info: strawberry.Info) -> AsyncGenerator[Event, None]:
        async with info.context["bus"].open_subscription(notifications.EVENT_UPDATED) as subscription:
            async for payload in subscription:
                yield Event.from_payload(payload)

    @strawberry.subscription
    async def location_created(self, info: strawberry.Info) -> AsyncGenerator[Location, None]:
        async with info.context["bus"].open_subscription(notifications.LOCATION_CREATED) as subscription:
            async for payload in subscription:
                yield Location.from_payload(payload)

    @strawberry.subscription
    async def location_updated(self, info: strawberry.Info) -> AsyncGenerator[Location, None]:
        async with info.context["bus"].open_subscription(notifications.LOCATION_UPDATED) as subscription:
            async for payload in subscription:
                yield Location.from_payload(payload)

    @strawberry.subscription
    async def participant_created(self, info: strawberry.Info) -> AsyncGenerator[Participant, None]:
        async with info.context["bus"].open_subscription(notifications.PARTICIPANT_CREATED) as subscription:
            async for payload in subscription:
                yield Participant.from_payload(payload)

    @strawberry.subscription
    async def participant_updated(self, info: strawberry.Info) -> AsyncGenerator[Participant, None]:
        async with info.context["bus"].open_subscription(notifications.PARTICIPANT_UPDATED) as subscription:
            async for payload in subscription:
                yield Participant.from_payload(payload)
