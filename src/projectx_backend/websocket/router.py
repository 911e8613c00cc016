"""
WebSocket router and endpoints.

Provides the chat WebSocket endpoints and the public status query.
"""

import logging
from fastapi import APIRouter, WebSocket

from projectx_backend.websocket.auth import authenticate_websocket_token, extract_token, WebSocketAuthError
from projectx_backend.websocket.connection_manager import manager, ConnectionLimitError, CLOSE_INTERNAL_ERROR
from projectx_types.websocket import WSError, WSStatus

logger = logging.getLogger(__name__)

ws_router = APIRouter()


async def _reject(websocket: WebSocket, code: int, reason: str):
    """Accept, explain and close; clients only see close reasons after an accept."""
    try:
        await websocket.accept()
        await websocket.send_text(WSError(message=reason).model_dump_json())
        await websocket.close(code=code, reason=reason)
    except Exception as e:
        logger.debug(f"Could not deliver rejection ({code}): {e}")


@ws_router.websocket("/ws")
@ws_router.websocket("/ws/chat")
async def websocket_endpoint(websocket: WebSocket):
    """
    Chat WebSocket endpoint.

    Authentication:
        Pass the access token as a query parameter or as a bearer header.
        Example: ws://localhost:8000/ws?token=<access_token>

    Connection Flow:
        1. Client connects with token
        2. Server validates token, accepts and sends ``welcome``
        3. Client joins rooms with ``join_room`` (participants only)
        4. Client/server exchange frames; every outbound frame may carry
           several newline-separated JSON objects

    Client -> Server frames:
        - {"type": "join_room", "room_id": 42}
        - {"type": "leave_room", "room_id": 42}
        - {"type": "chat", "room_id": 42, "content": "hi", "message_type": "text",
           "reply_to_id": null, "metadata": null}
        - {"type": "typing", "room_id": 42}
        - {"type": "ping"}

    Server -> Client frames:
        welcome, message, room_joined, room_left, user_joined, user_left,
        typing, pong, heartbeat, error, and notifications.

    Keep-Alive:
        The server sends protocol pings every WS_PING_PERIOD seconds and drops
        peers that do not pong within WS_PONG_WAIT. Idle clients also get a
        ``heartbeat`` frame; answering it is optional. WS_IDLE_TIMEOUT (off by
        default) closes clients that send no frames at all.
    """
    session = None

    try:
        principal = await authenticate_websocket_token(extract_token(websocket))
        session = await manager.connect(websocket, principal)
        await manager.serve(session)

    except WebSocketAuthError as e:
        logger.warning(f"WebSocket auth failed: {e.reason}")
        await _reject(websocket, e.code, e.reason)

    except ConnectionLimitError as e:
        logger.warning(f"WebSocket connection limit: {e.message}")
        await _reject(websocket, e.code, e.message)

    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
        if session is None:
            try:
                await websocket.close(code=CLOSE_INTERNAL_ERROR, reason="Internal error")
            except Exception as close_error:
                logger.debug(f"Close after error failed: {close_error}")

    finally:
        if session is not None:
            await manager.disconnect(session)


@ws_router.get("/api/ws/status", response_model=WSStatus, response_model_exclude_none=True)
async def websocket_status():
    """Public connection count."""
    return WSStatus(online_users=manager.get_connection_count())
