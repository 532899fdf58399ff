from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from vnengine.api.deps import get_redis, get_settings
from vnengine.api.models import (
    ActionRequest,
    ActionView,
    ChoiceRequest,
    CustomResultRequest,
    LocationView,
    SaveListResponse,
    SaveRequest,
    SaveSummary,
    SessionView,
    SkipRequest,
    TravelRequest,
)
from vnengine.config import EngineSettings
from vnengine.content.singleton import get_content
from vnengine.core.errors import InvalidOperationError
from vnengine.engine import Engine
from vnengine.save_store import delete_save, list_saves
from vnengine.sessions import Session, sessions
from vnengine.websocket_hub import hub

router = APIRouter()


def _require_session(session_id: UUID) -> Session:
    try:
        return sessions.get(session_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


def _view(session: Session) -> SessionView:
    engine = session.engine
    return SessionView(
        session_id=session.session_id,
        project_id=engine.content.project_id,
        engine_state=engine.engine_state,
        game_state=engine.world,
        actions=[ActionView(id=a.id, name=a.name) for a in engine.actions.get_accessible()],
        locations=[LocationView(id=loc.id, name=loc.name) for loc in engine.accessible_locations],
        can_go_back=engine.history.can_go_back(),
        can_go_forward=engine.history.can_go_forward(),
        skip_enabled=engine.navigation.skip_enabled,
    )


async def _apply(session: Session, op: Callable[[Engine], object]) -> SessionView:
    """Run one player operation, let the script catch up, and notify listeners."""

    try:
        op(session.engine)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except (InvalidOperationError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    engine = session.engine
    await engine.settle()
    await hub.notify(
        str(session.session_id),
        status=engine.status.value,
        current_event=engine.engine_state.current_event,
        current_step=engine.engine_state.current_step,
    )
    return _view(session)


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(websocket: WebSocket, session_id: UUID) -> None:
    sid = str(session_id)
    try:
        sessions.get(session_id)
    except LookupError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await hub.connect(sid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(sid, websocket)
    except Exception:
        await hub.disconnect(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(settings: EngineSettings = Depends(get_settings)) -> SessionView:
    session = await sessions.create(content=get_content(), settings=settings)
    return _view(session)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session_route(session_id: UUID) -> SessionView:
    return _view(_require_session(session_id))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session_route(session_id: UUID) -> Response:
    try:
        await sessions.close(session_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    await hub.forget(str(session_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/forward", response_model=SessionView)
async def forward_route(session_id: UUID) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.go_forward())


@router.post("/sessions/{session_id}/back", response_model=SessionView)
async def back_route(session_id: UUID) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.go_back())


@router.post("/sessions/{session_id}/choice", response_model=SessionView)
async def choice_route(session_id: UUID, payload: ChoiceRequest) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.choose(payload.choice))


@router.post("/sessions/{session_id}/custom", response_model=SessionView)
async def custom_result_route(session_id: UUID, payload: CustomResultRequest) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.submit_custom(payload.value))


@router.post("/sessions/{session_id}/skip", response_model=SessionView)
async def skip_route(session_id: UUID, payload: SkipRequest) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.set_skip(payload.enabled))


@router.post("/sessions/{session_id}/actions", response_model=SessionView)
async def action_route(session_id: UUID, payload: ActionRequest) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.execute_action(payload.action_id))


@router.post("/sessions/{session_id}/travel", response_model=SessionView)
async def travel_route(session_id: UUID, payload: TravelRequest) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.travel(payload.location_id))


@router.post("/sessions/{session_id}/new-game", response_model=SessionView)
async def new_game_route(session_id: UUID) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.new_game())


@router.post("/sessions/{session_id}/saves/{slot}", response_model=SaveSummary, status_code=status.HTTP_201_CREATED)
async def save_route(
    session_id: UUID,
    slot: int,
    payload: SaveRequest | None = None,
    r: redis.Redis = Depends(get_redis),
) -> SaveSummary:
    session = _require_session(session_id)
    try:
        record = session.engine.save(r=r, slot=slot, name=payload.name if payload else None)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return SaveSummary(
        slot=slot,
        name=record.name,
        timestamp=record.timestamp,
        current_event=record.engine_state.current_event,
        current_step=record.engine_state.current_step,
    )


@router.post("/sessions/{session_id}/saves/{slot}/load", response_model=SessionView)
async def load_route(session_id: UUID, slot: int, r: redis.Redis = Depends(get_redis)) -> SessionView:
    return await _apply(_require_session(session_id), lambda e: e.load(r=r, slot=slot))


@router.get("/saves", response_model=SaveListResponse)
async def list_saves_route(r: redis.Redis = Depends(get_redis)) -> SaveListResponse:
    project_id = get_content().project_id
    return SaveListResponse(project_id=project_id, saves=list_saves(r=r, project_id=project_id))


@router.delete("/saves/{slot}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_save_route(slot: int, r: redis.Redis = Depends(get_redis)) -> Response:
    if not delete_save(r=r, project_id=get_content().project_id, slot=slot):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No save data in slot {slot}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
