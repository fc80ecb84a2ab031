"""
Tests for event relationship resolution
"""
from event_planner.core.relations import RelationshipResolver
from event_planner.schemas import Event


def test_user_and_location_for_event(store):
    relations = RelationshipResolver(store)
    event = store.events.get("2")

    assert relations.user_for(event).username == "Mehmet"
    assert relations.location_for(event).name == "City Library"


def test_participants_for_event(store):
    relations = RelationshipResolver(store)

    participants = relations.participants_for(store.events.get("1"))

    assert [p.user_id for p in participants] == ["2", "3"]


def test_dangling_references_resolve_to_none(store):
    relations = RelationshipResolver(store)
    event = Event(
        id="orphan", title="t", desc="d", date="2024-01-01",
        from_="10:00", to="11:00", location_id="404", user_id="404",
    )

    assert relations.user_for(event) is None
    assert relations.location_for(event) is None
    assert relations.participants_for(event) == []


def test_relations_are_not_cached(store):
    relations = RelationshipResolver(store)
    event = store.events.get("1")
    assert relations.user_for(event) is not None

    store.users.remove_by_id(event.user_id)

    assert relations.user_for(event) is None
