from __future__ import annotations

import importlib
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from vnengine.locations import LocationRegistry
    from vnengine.scheduler import ScriptAPI


World = dict[str, Any]
Predicate = Callable[[World], bool]
ScriptFn = Callable[["ScriptAPI", World], Awaitable[Any]]


class ContentLoadError(RuntimeError):
    pass


def _always(_: World) -> bool:
    return True


def _never(_: World) -> bool:
    return False


@dataclass(frozen=True, slots=True)
class Branch:
    execute: ScriptFn


@dataclass(frozen=True, slots=True)
class AuthoredEvent:
    """An authored script plus the predicates that decide when it fires.

    - `unlocked`: the event becomes a candidate (checked once per cache refresh).
    - `locked`: the event is retired for the rest of the game.
    - `conditions`: the candidate fires now.
    """

    id: str
    execute: ScriptFn
    name: str = ""
    conditions: Predicate = _always
    unlocked: Predicate = _always
    locked: Predicate = _never
    branches: Mapping[str, Branch] = field(default_factory=dict)
    foreground: str | None = None


@dataclass(frozen=True, slots=True)
class Action:
    id: str
    name: str
    execute: Callable[[World], None]
    unlocked: Predicate = _always


@dataclass(frozen=True, slots=True)
class ConditionalValue:
    check: Predicate
    value: str


@dataclass(frozen=True, slots=True)
class Location:
    id: str
    name: str
    base_background: str | None = None
    time_backgrounds: tuple[ConditionalValue, ...] = ()
    unlocked: Predicate = _always
    events: tuple[AuthoredEvent, ...] = ()
    actions: tuple[Action, ...] = ()


class LocationLinker(Protocol):
    """Content-supplied strategy that declares which locations connect."""

    def init_links(self, registry: "LocationRegistry") -> None: ...


@dataclass(frozen=True, slots=True)
class ContentPack:
    project_id: str
    initial_state: Callable[[], World]
    locations: tuple[Location, ...] = ()
    global_events: tuple[AuthoredEvent, ...] = ()
    global_actions: tuple[Action, ...] = ()
    linker: LocationLinker | None = None


def load_content_pack(target: str) -> ContentPack:
    """Import a pack from a `package.module:attribute` reference."""

    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ContentLoadError(f"Content reference must look like 'module:attribute', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ContentLoadError(f"Cannot import content module {module_name!r}") from e

    pack = getattr(module, attr, None)
    if callable(pack) and not isinstance(pack, ContentPack):
        pack = pack()
    if not isinstance(pack, ContentPack):
        raise ContentLoadError(f"{target!r} is not a ContentPack")
    return pack
