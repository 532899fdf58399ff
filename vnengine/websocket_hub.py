from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """In-process fan-out of session notifications to connected viewers.

    Every message is `{"type": <event>, "session_id": <id>, **fields}`.
    Viewers only get told *that* something changed and re-fetch the session.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_session[session_id].add(websocket)

    async def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_session.get(session_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_session.pop(session_id, None)

    async def notify(self, session_id: str, event: str = "session_updated", **fields: Any) -> None:
        async with self._lock:
            conns = list(self._by_session.get(session_id, set()))
        if not conns:
            return

        payload = {"type": event, "session_id": session_id, **fields}
        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            logger.debug("Dropping %d dead viewer(s) of session %s", len(dead), session_id)
            async with self._lock:
                for ws in dead:
                    self._by_session.get(session_id, set()).discard(ws)

    async def forget(self, session_id: str) -> None:
        """Tell viewers the session is gone and stop tracking them; sockets stay open."""

        await self.notify(session_id, "session_closed")
        async with self._lock:
            self._by_session.pop(session_id, None)


hub = SessionWebSocketHub()
