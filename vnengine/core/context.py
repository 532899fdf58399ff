from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from vnengine.core.history import HistoryStore
from vnengine.core.navigation import NavigationController

if TYPE_CHECKING:
    from vnengine.api.models import EngineState


@dataclass(slots=True)
class EngineContext:
    """Everything one engine instance mutates, passed explicitly to each operation.

    `world` and `engine_state` are replaced wholesale on new game, load, and
    history playback, so callers must read them through the context rather
    than holding on to the old objects.
    """

    world: dict[str, Any]
    engine_state: "EngineState"
    history: HistoryStore
    navigation: NavigationController

    def snapshot_world(self) -> dict[str, Any]:
        return copy.deepcopy(self.world)

    def snapshot_engine(self) -> dict[str, Any]:
        return self.engine_state.model_dump(mode="json")
