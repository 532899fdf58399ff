from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID, uuid4

from vnengine.config import EngineSettings
from vnengine.content.registry import ContentPack
from vnengine.engine import Engine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    session_id: UUID
    engine: Engine


class SessionRegistry:
    """In-process registry of running engines keyed by session id.

    Engines hold live coroutines, so sessions cannot move between processes;
    only save slots outlive a restart.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Session] = {}
        self._lock = asyncio.Lock()

    async def create(self, *, content: ContentPack, settings: EngineSettings | None = None) -> Session:
        engine = Engine(content, settings=settings)
        engine.new_game()
        engine.start()
        session = Session(session_id=uuid4(), engine=engine)
        async with self._lock:
            self._by_id[session.session_id] = session
        await engine.settle()
        logger.info("Session %s started (%s)", session.session_id, content.project_id)
        return session

    def get(self, session_id: UUID) -> Session:
        session = self._by_id.get(session_id)
        if session is None:
            raise LookupError("Session not found")
        return session

    async def close(self, session_id: UUID) -> None:
        async with self._lock:
            session = self._by_id.pop(session_id, None)
        if session is None:
            raise LookupError("Session not found")
        await session.engine.close()

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._by_id.values())
            self._by_id.clear()
        for session in sessions:
            await session.engine.close()


sessions = SessionRegistry()
