from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from ..world.engine import Envelope, WorldEngine


logger = logging.getLogger(__name__)


class ConnectionManager:
    """Track active websocket connections per session."""

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}

    def attach(self, session_id: str, ws: WebSocket) -> None:
        self._connections[session_id] = ws

    def detach(self, session_id: str, ws: Optional[WebSocket] = None) -> None:
        if ws is not None and self._connections.get(session_id) is not ws:
            return
        self._connections.pop(session_id, None)

    def get(self, session_id: str) -> Optional[WebSocket]:
        return self._connections.get(session_id)

    def is_connected(self, session_id: str) -> bool:
        return session_id in self._connections

    async def send(self, session_id: str, message: Dict[str, Any]) -> bool:
        ws = self._connections.get(session_id)
        if not ws:
            return False
        try:
            await ws.send_json(message)
        except RuntimeError:
            # Connection cleanup happens on disconnect.
            return False
        return True

    async def deliver(self, world: WorldEngine, envelopes: Iterable[Envelope]) -> int:
        """Send each envelope to the sessions it addresses right now."""
        sent = 0
        for envelope in envelopes:
            message = envelope.to_message()
            for session_id in world.recipients(envelope):
                if await self.send(session_id, message):
                    sent += 1
        return sent
