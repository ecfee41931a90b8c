"""Live push channel for connected users.

A user may hold several connections (tabs, devices). Delivery is
at-most-once: a connection that fails a send is dropped and the event is
not retried. The notifications table stays the source of truth.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Set
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from .models import PushEvent

logger = logging.getLogger(__name__)


class PushHub:
    def __init__(self):
        # Map of user id -> open WebSocket connections
        self.active_connections: Dict[str, Set[WebSocket]] = {}

    async def join(self, user_id: UUID, websocket: WebSocket):
        """Register an accepted connection for a user and confirm it."""
        key = str(user_id)
        self.active_connections.setdefault(key, set()).add(websocket)
        logger.info(f"Push connection opened for user {key} ({len(self.active_connections[key])} open)")

        await self._send(key, websocket, {
            "type": "connection_status",
            "data": {
                "status": "connected",
                "user_id": key
            },
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    def leave(self, user_id: UUID, websocket: WebSocket):
        """Forget a connection. Unknown connections are ignored."""
        key = str(user_id)
        connections = self.active_connections.get(key)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            del self.active_connections[key]
        logger.info(f"Push connection closed for user {key}")

    def connection_count(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())

    async def emit(self, user_id: UUID, event: str, payload: Any = None) -> int:
        """Send an event to every connection of a user.

        Returns:
            Number of connections the event was delivered to
        """
        key = str(user_id)
        connections = list(self.active_connections.get(key, ()))
        if not connections:
            return 0

        frame = jsonable_encoder(PushEvent(
            type=event,
            data=payload,
            timestamp=datetime.now(timezone.utc)
        ))

        delivered = 0
        for websocket in connections:
            if await self._send(key, websocket, frame):
                delivered += 1
        return delivered

    async def _send(self, key: str, websocket: WebSocket, frame: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json(frame)
            return True
        except Exception as e:
            logger.warning(f"Dropping push connection for user {key}: {e}")
            self.leave(key, websocket)
            return False
