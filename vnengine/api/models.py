from __future__ import annotations

from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from vnengine.core.history import HistoryData


class EngineStatus(StrEnum):
    menu = "MENU"
    loading = "LOADING"
    running = "RUNNING"


class Dialogue(BaseModel):
    text: str
    speaker: str | None = None


class ChoiceOption(BaseModel):
    text: str
    branch: str


class EngineState(BaseModel):
    status: EngineStatus = EngineStatus.menu
    initialized: bool = False

    # Presentation.
    background: str | None = None
    foreground: list[str] | None = None
    dialogue: Dialogue | None = None
    choices: list[ChoiceOption] | None = None
    custom_args: dict[str, Any] | None = None

    # Bookmark into the active script function.
    current_event: str | None = None
    current_branch: str | None = None
    current_step: int = 0

    # Choice / custom-logic results of the active function, keyed by step, fed back during replay.
    answers: dict[int, Any] = Field(default_factory=dict)

    # World snapshot taken when the active function was entered; replay starts from it.
    checkpoint: dict[str, Any] | None = None


class SaveRecord(BaseModel):
    name: str
    timestamp: str
    game_state: dict[str, Any]
    engine_state: EngineState
    history_state: HistoryData = Field(default_factory=HistoryData)


class SaveSummary(BaseModel):
    slot: int
    name: str
    timestamp: str
    current_event: str | None = None
    current_step: int = 0


class SaveListResponse(BaseModel):
    project_id: str
    saves: list[SaveSummary]


class SaveRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)


class ChoiceRequest(BaseModel):
    choice: str = Field(..., min_length=1)


class CustomResultRequest(BaseModel):
    value: Any = None


class SkipRequest(BaseModel):
    enabled: bool


class ActionRequest(BaseModel):
    action_id: str = Field(..., min_length=1)


class TravelRequest(BaseModel):
    location_id: str = Field(..., min_length=1)


class ActionView(BaseModel):
    id: str
    name: str


class LocationView(BaseModel):
    id: str
    name: str


class SessionView(BaseModel):
    session_id: UUID
    project_id: str
    engine_state: EngineState
    game_state: dict[str, Any]
    actions: list[ActionView] = Field(default_factory=list)
    locations: list[LocationView] = Field(default_factory=list)
    can_go_back: bool = False
    can_go_forward: bool = False
    skip_enabled: bool = False
