"""Small bundled content pack used when no VNENGINE_CONTENT is configured."""

from __future__ import annotations

from vnengine.content.registry import (
    Action,
    AuthoredEvent,
    Branch,
    ConditionalValue,
    ContentPack,
    Location,
    World,
)
from vnengine.locations import LocationRegistry
from vnengine.scheduler import ScriptAPI


PROJECT_ID = "demo"


def initial_state() -> World:
    return {
        "player": {"name": "MC", "personality": None},
        "location_id": "bedroom",
        "flags": {},
        "game_time": {"hour": 8, "day": 1},
    }


def wait_one_hour(world: World) -> None:
    clock = world["game_time"]
    clock["hour"] += 1
    if clock["hour"] >= 24:
        clock["hour"] = 0
        clock["day"] += 1


async def _intro(api: ScriptAPI, state: World) -> None:
    state["flags"]["intro_seen"] = True
    await api.show_text("The alarm rings. Another day.")
    await api.show_text("Sunlight leaks through the blinds.")
    await api.show_text("Someone knocks at the door.")
    await api.show_choices(
        [
            {"text": "Open the door", "branch": "open_door"},
            {"text": "Pretend nobody is home", "branch": "pretend_away"},
        ]
    )


async def _open_door(api: ScriptAPI, state: World) -> None:
    state["player"]["personality"] = "brave"
    await api.show_text("You open the door. The hallway is empty.")
    state["location_id"] = "hallway"


async def _pretend_away(api: ScriptAPI, state: World) -> None:
    state["player"]["personality"] = "secretive"
    await api.show_text("You hold your breath until the footsteps fade.")
    state["flags"]["note_under_door"] = True
    await api.show_text("A folded note slides under the door.")


intro = AuthoredEvent(
    id="intro",
    name="Wake up",
    unlocked=lambda s: not s["flags"].get("intro_seen"),
    locked=lambda s: bool(s["flags"].get("intro_seen")),
    execute=_intro,
    branches={"open_door": Branch(_open_door), "pretend_away": Branch(_pretend_away)},
)


async def _read_note(api: ScriptAPI, state: World) -> None:
    state["flags"]["note_read"] = True
    api.set_foreground(["images/note.png"])
    await api.show_text("'Meet me in the kitchen.'")
    if state["game_time"]["hour"] >= 12:
        await api.jump("late")
    await api.show_text("There is still time for breakfast.")


async def _read_note_late(api: ScriptAPI, state: World) -> None:
    await api.show_text("It is probably too late already.")


read_note = AuthoredEvent(
    id="read_note",
    name="Read the note",
    conditions=lambda s: bool(s["flags"].get("note_under_door")),
    locked=lambda s: bool(s["flags"].get("note_read")),
    execute=_read_note,
    branches={"late": Branch(_read_note_late)},
)


class DemoLinker:
    def init_links(self, registry: LocationRegistry) -> None:
        registry.link_both("bedroom", "hallway")
        registry.link_both("hallway", "kitchen")


def build_demo_pack() -> ContentPack:
    bedroom = Location(
        id="bedroom",
        name="Bedroom",
        base_background="images/bedroom/day.png",
        time_backgrounds=(ConditionalValue(check=lambda s: s["game_time"]["hour"] >= 20, value="images/bedroom/night.png"),),
        events=(intro, read_note),
        actions=(
            Action(
                id="sleep",
                name="Sleep until morning",
                unlocked=lambda s: s["game_time"]["hour"] >= 20,
                execute=lambda s: s["game_time"].update(hour=8, day=s["game_time"]["day"] + 1),
            ),
        ),
    )
    hallway = Location(id="hallway", name="Hallway", base_background="images/hallway.png")
    kitchen = Location(
        id="kitchen",
        name="Kitchen",
        base_background="images/kitchen.png",
        unlocked=lambda s: bool(s["flags"].get("intro_seen")),
    )

    return ContentPack(
        project_id=PROJECT_ID,
        initial_state=initial_state,
        locations=(bedroom, hallway, kitchen),
        global_actions=(Action(id="wait", name="Wait 1H", execute=wait_one_hour),),
        linker=DemoLinker(),
    )
