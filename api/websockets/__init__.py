"""WebSocket endpoint for live notification delivery."""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from common import SkillSwapError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/ws",
    tags=["WebSocket"]
)

# Seconds a client has to send its token frame
AUTH_TIMEOUT = 10

# Close code for a missing or rejected token
CLOSE_UNAUTHORIZED = 4001


async def _authenticate(websocket: WebSocket):
    """Read the token frame and resolve it to a user, or None."""
    try:
        frame = await asyncio.wait_for(websocket.receive_json(), timeout=AUTH_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Push client sent no token frame in time")
        return None
    except WebSocketDisconnect:
        logger.info("Push client disconnected before authenticating")
        return None
    except (ValueError, KeyError):
        # KeyError: binary frame where a text frame was expected
        return None

    token = frame.get("token") if isinstance(frame, dict) else None
    if not token:
        return None

    try:
        return await websocket.app.state.auth.authenticate(token)
    except SkillSwapError as e:
        logger.info(f"Push authentication rejected: {e.message}")
        return None


@router.websocket("/notifications")
async def notifications_endpoint(websocket: WebSocket):
    """Authenticate with a {"token": ...} frame, then receive pushed events.

    Client frames of {"type": "ping"} are answered with a pong.
    """
    await websocket.accept()

    user = await _authenticate(websocket)
    if user is None:
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close(code=CLOSE_UNAUTHORIZED, reason="Authentication required")
        return

    hub = websocket.app.state.hub
    await hub.join(user['id'], websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                })
    except WebSocketDisconnect:
        pass
    except (ValueError, KeyError) as e:
        logger.warning(f"Malformed push frame from user {user['id']}: {e}")
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
    finally:
        hub.leave(user['id'], websocket)


# Export the router
__all__ = ['router']
