from __future__ import annotations

import pytest

from vnengine.content.demo import build_demo_pack, initial_state
from vnengine.content.registry import AuthoredEvent, ContentPack, Location
from vnengine.core.errors import UnknownEventError
from vnengine.events import GLOBAL_SCOPE, EventCatalog


async def _noop(api, state) -> None:  # type: ignore[no-untyped-def]
    return None


def test_intro_fires_first_in_bedroom() -> None:
    catalog = EventCatalog(build_demo_pack())
    world = initial_state()
    catalog.reset(world)

    event = catalog.find_immediate(world)

    assert event is not None
    assert event.id == "intro"


def test_events_move_one_way_through_caches() -> None:
    catalog = EventCatalog(build_demo_pack())
    world = initial_state()
    catalog.reset(world)
    bedroom = catalog.cache_for("bedroom")
    assert set(bedroom.unlocked) == {"intro", "read_note"}

    world["flags"]["intro_seen"] = True
    catalog.update(world)
    assert "intro" in bedroom.locked

    # Clearing the flag again must not bring a locked event back.
    world["flags"]["intro_seen"] = False
    catalog.update(world)
    assert "intro" in bedroom.locked
    assert "intro" not in bedroom.unlocked


def test_conditions_gate_unlocked_events() -> None:
    catalog = EventCatalog(build_demo_pack())
    world = initial_state()
    world["flags"]["intro_seen"] = True
    catalog.reset(world)

    assert catalog.find_immediate(world) is None

    world["flags"]["note_under_door"] = True
    event = catalog.find_immediate(world)
    assert event is not None
    assert event.id == "read_note"


def test_location_events_take_precedence_over_global() -> None:
    local = AuthoredEvent(id="local", execute=_noop)
    anywhere = AuthoredEvent(id="anywhere", execute=_noop)
    pack = ContentPack(
        project_id="t",
        initial_state=lambda: {"location_id": "here"},
        locations=(Location(id="here", name="Here", events=(local,)),),
        global_events=(anywhere,),
    )
    catalog = EventCatalog(pack)
    world = pack.initial_state()
    catalog.reset(world)

    assert catalog.find_immediate(world).id == "local"
    world["location_id"] = "elsewhere"
    assert catalog.find_immediate(world).id == "anywhere"
    assert "anywhere" in catalog.cache_for(GLOBAL_SCOPE).unlocked


def test_find_unknown_event_raises_lookup_error() -> None:
    catalog = EventCatalog(build_demo_pack())

    with pytest.raises(UnknownEventError):
        catalog.find("missing")


def test_duplicate_event_ids_are_rejected() -> None:
    event = AuthoredEvent(id="twice", execute=_noop)
    pack = ContentPack(
        project_id="t",
        initial_state=dict,
        locations=(Location(id="a", name="A", events=(event,)),),
        global_events=(event,),
    )

    with pytest.raises(ValueError):
        EventCatalog(pack)
