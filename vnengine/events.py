from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from vnengine.content.registry import AuthoredEvent, ContentPack, World
from vnengine.core.errors import UnknownEventError

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "__global__"


@dataclass(slots=True)
class EventCache:
    """Events of one scope, moving one way: not_ready -> unlocked -> locked."""

    not_ready: dict[str, AuthoredEvent] = field(default_factory=dict)
    unlocked: dict[str, AuthoredEvent] = field(default_factory=dict)
    locked: dict[str, AuthoredEvent] = field(default_factory=dict)

    @staticmethod
    def from_events(events: Iterable[AuthoredEvent]) -> "EventCache":
        return EventCache(not_ready={e.id: e for e in events})

    def refresh(self, world: World) -> None:
        still_not_ready: dict[str, AuthoredEvent] = {}
        for event_id, event in self.not_ready.items():
            if event.unlocked(world):
                self.unlocked[event_id] = event
            else:
                still_not_ready[event_id] = event
        self.not_ready = still_not_ready

        still_unlocked: dict[str, AuthoredEvent] = {}
        for event_id, event in self.unlocked.items():
            if event.locked(world):
                self.locked[event_id] = event
            else:
                still_unlocked[event_id] = event
        self.unlocked = still_unlocked


class EventCatalog:
    """Per-location and global event caches for one content pack."""

    def __init__(self, content: ContentPack) -> None:
        self._content = content
        self._by_id: dict[str, AuthoredEvent] = {}
        for event in self._all_events():
            if event.id in self._by_id:
                raise ValueError(f"Duplicate event id: {event.id}")
            self._by_id[event.id] = event
        self._caches: dict[str, EventCache] = {}

    def _all_events(self) -> Iterable[AuthoredEvent]:
        for loc in self._content.locations:
            yield from loc.events
        yield from self._content.global_events

    def reset(self, world: World) -> None:
        self._caches = {loc.id: EventCache.from_events(loc.events) for loc in self._content.locations}
        self._caches[GLOBAL_SCOPE] = EventCache.from_events(self._content.global_events)
        self.update(world)

    def update(self, world: World, location_id: str | None = None) -> None:
        scopes = [location_id] if location_id else [s for s in self._caches if s != GLOBAL_SCOPE]
        for scope in scopes:
            cache = self._caches.get(scope)
            if cache is not None:
                cache.refresh(world)
        global_cache = self._caches.get(GLOBAL_SCOPE)
        if global_cache is not None:
            global_cache.refresh(world)

    def cache_for(self, scope: str) -> EventCache | None:
        return self._caches.get(scope)

    def find(self, event_id: str) -> AuthoredEvent:
        event = self._by_id.get(event_id)
        if event is None:
            raise UnknownEventError(f"Unknown event id: {event_id!r}")
        return event

    def find_immediate(self, world: World) -> AuthoredEvent | None:
        """First unlocked event whose conditions hold; current-location events before global ones."""

        candidates: list[AuthoredEvent] = []
        location_id = world.get("location_id")
        if isinstance(location_id, str) and location_id in self._caches:
            candidates.extend(self._caches[location_id].unlocked.values())
        global_cache = self._caches.get(GLOBAL_SCOPE)
        if global_cache is not None:
            candidates.extend(global_cache.unlocked.values())

        for event in candidates:
            if event.conditions(world):
                return event
        return None
