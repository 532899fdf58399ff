from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from vnengine.content.registry import Action, World
from vnengine.core.errors import InvalidOperationError, UnknownActionError
from vnengine.locations import LocationRegistry

logger = logging.getLogger(__name__)


class ActionResolver:
    """Player-triggered world actions: global ones plus those of the current location.

    The accessible set is a cache, not a live view: call `update_accessible()`
    after anything that may change availability.
    """

    def __init__(self, *, global_actions: Sequence[Action] = (), locations: LocationRegistry | None = None) -> None:
        self._global: dict[str, Action] = {}
        for action in global_actions:
            if action.id in self._global:
                raise ValueError(f"Duplicate action id: {action.id}")
            self._global[action.id] = action
        self._locations = locations
        self._accessible: list[Action] = []
        self._update_callback: Callable[[], None] | None = None

    def set_update_callback(self, callback: Callable[[], None] | None) -> None:
        self._update_callback = callback

    def merged_actions(self, world: World) -> dict[str, Action]:
        merged = dict(self._global)
        if self._locations is not None:
            location_id = world.get("location_id")
            if isinstance(location_id, str):
                # Location actions shadow global ones with the same id.
                merged.update(self._locations.actions_for(location_id))
        return merged

    def update_accessible(self, world: World) -> list[Action]:
        self._accessible = [a for a in self.merged_actions(world).values() if a.unlocked(world)]
        if self._update_callback is not None:
            self._update_callback()
        return self._accessible

    def get_accessible(self) -> list[Action]:
        return list(self._accessible)

    def execute_action(self, action_id: str, world: World) -> None:
        action = self.merged_actions(world).get(action_id)
        if action is None:
            raise UnknownActionError(f"Unknown action id: {action_id!r}")

        # The UI may be showing a stale accessible set.
        if not action.unlocked(world):
            raise InvalidOperationError(f"Action {action_id!r} is not available")

        logger.info("Executing action: %s", action.name)
        action.execute(world)
