from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from vnengine.content.registry import Action, LocationLinker, Location, World
from vnengine.core.errors import UnknownLocationError

logger = logging.getLogger(__name__)


class LocationRegistry:
    """Locations of a content pack and the links between them.

    Links are declared by the pack's `LocationLinker` strategy right after the
    registry is built; a pack without a linker simply has no connections.
    """

    def __init__(self, locations: Sequence[Location], linker: LocationLinker | None = None) -> None:
        self._by_id: dict[str, Location] = {}
        for loc in locations:
            if loc.id in self._by_id:
                raise ValueError(f"Duplicate location id: {loc.id}")
            self._by_id[loc.id] = loc
        self._links: dict[str, dict[str, Location]] = {loc_id: {} for loc_id in self._by_id}

        if linker is not None:
            linker.init_links(self)
        stats = ", ".join(f"{loc_id}: {len(links)}" for loc_id, links in self._links.items())
        logger.debug("Location links initialized (%s)", stats or "no locations")

    def __contains__(self, location_id: object) -> bool:
        return location_id in self._by_id

    def find(self, location_id: str) -> Location:
        loc = self._by_id.get(location_id)
        if loc is None:
            raise UnknownLocationError(f"Unknown location id: {location_id!r}")
        return loc

    def link(self, location_id: str, accessible: Iterable[str]) -> None:
        """Make every location in `accessible` reachable from `location_id` (one way)."""

        self.find(location_id)
        for target_id in accessible:
            self._links[location_id][target_id] = self.find(target_id)

    def link_both(self, a: str, b: str) -> None:
        self.link(a, [b])
        self.link(b, [a])

    def accessible_from(self, location_id: str, world: World | None = None) -> list[Location]:
        self.find(location_id)
        links = list(self._links[location_id].values())
        if world is None:
            return links
        return [loc for loc in links if loc.unlocked(world)]

    def actions_for(self, location_id: str) -> dict[str, Action]:
        loc = self._by_id.get(location_id)
        if loc is None:
            return {}
        return {a.id: a for a in loc.actions}

    def background_for(self, location_id: str, world: World) -> str | None:
        loc = self.find(location_id)
        # First matching time-based override wins.
        for candidate in loc.time_backgrounds:
            if candidate.check(world):
                return candidate.value
        return loc.base_background
