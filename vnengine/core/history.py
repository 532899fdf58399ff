from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY_SIZE = 20


class HistoryKind(StrEnum):
    text = "text"
    choice = "choice"


class HistoryEntry(BaseModel):
    """One resolved narrative action.

    The snapshots are taken when the entry is presented, so rewinding to it can
    put the screen and the world back exactly as the player saw them.
    """

    kind: HistoryKind
    event_id: str
    branch: str | None = None
    step: int
    payload: dict[str, Any] = Field(default_factory=dict)
    game_state: dict[str, Any] = Field(default_factory=dict)
    engine_state: dict[str, Any] = Field(default_factory=dict)


class HistoryData(BaseModel):
    # Oldest first; the last element is the next undo target.
    history: list[HistoryEntry] = Field(default_factory=list)
    present: HistoryEntry | None = None
    # First element is the next redo target.
    future: list[HistoryEntry] = Field(default_factory=list)


class HistoryStore:
    """Bounded undo/redo buffer split into history / present / future."""

    def __init__(self, *, max_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        self.max_size = max_size
        self._data = HistoryData()

    def reset_history(self) -> None:
        logger.debug("Resetting history")
        self._data = HistoryData()

    def can_go_back(self) -> bool:
        return len(self._data.history) > 0

    def can_go_forward(self) -> bool:
        return len(self._data.future) > 0

    def get_present(self) -> HistoryEntry | None:
        return self._data.present

    def go_back(self) -> None:
        entry = self._data.history.pop() if self._data.history else None
        if self._data.present is not None:
            self._data.future.insert(0, self._data.present)
            self._data.present = None
        if entry is not None:
            self._data.present = entry

    def go_forward(self) -> None:
        entry = self._data.future.pop(0) if self._data.future else None
        if self._data.present is not None:
            self._push_history(self._data.present)
            self._data.present = None
        if entry is not None:
            self._data.present = entry

    def record(self, entry: HistoryEntry) -> None:
        """Make a freshly presented entry the present one.

        A new entry starts a new timeline, so pending redo entries are dropped.
        """

        if self._data.present is not None:
            self._push_history(self._data.present)
        self._data.present = entry
        self._data.future.clear()

    def replace_present(self, entry: HistoryEntry) -> None:
        self._data.present = entry

    def discard_future(self) -> None:
        self._data.future.clear()

    def history_length(self) -> int:
        return len(self._data.history)

    def future_length(self) -> int:
        return len(self._data.future)

    def last_history_entry(self) -> HistoryEntry | None:
        return self._data.history[-1] if self._data.history else None

    def get_history_data(self) -> HistoryData:
        return self._data.model_copy(deep=True)

    def load_history_data(self, data: HistoryData) -> None:
        self._data = data.model_copy(deep=True)
        self._trim()

    def _push_history(self, entry: HistoryEntry) -> None:
        self._data.history.append(entry)
        self._trim()

    def _trim(self) -> None:
        overflow = len(self._data.history) - self.max_size
        if overflow > 0:
            del self._data.history[:overflow]
