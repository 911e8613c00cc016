"""
WebSocket event handlers.

Handles incoming client frames and dispatches the matching action. Every
rejection is answered with a unicast ``error`` frame; nothing raised here
ends the read loop.
"""

import json
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict

from starlette.concurrency import run_in_threadpool

from projectx_backend.websocket.session import ClientSession
from projectx_types.websocket import (
    FRAME_CHAT,
    FRAME_JOIN_ROOM,
    FRAME_LEAVE_ROOM,
    FRAME_PING,
    FRAME_TYPING,
    ROOM_SCOPED_FRAME_TYPES,
    ClientFrame,
    WSError,
    WSMessage,
    WSPong,
    WSRoomJoined,
    WSRoomLeft,
    WSTyping,
    WSUserJoined,
    WSUserLeft,
    parse_client_frame,
)

if TYPE_CHECKING:
    from projectx_backend.websocket.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

ERR_NOT_IN_ROOM = "You are not in this room"
ERR_EMPTY_CONTENT = "Message content cannot be empty"
ERR_NOT_PARTICIPANT = "You are not a participant in this room"
ERR_CANNOT_SEND = "You cannot send messages to this room"
ERR_SAVE_FAILED = "Failed to save message"
ERR_ROOM_REQUIRED = "room_id is required"
ERR_INTERNAL = "Internal error while handling message"


def send_error(manager: "ConnectionManager", session: ClientSession, message: str):
    manager.broadcaster.to_session(session, WSError(message=message))


async def handle_client_message(manager: "ConnectionManager", session: ClientSession, raw_text: str):
    """
    Handle one text frame received from a client.

    Args:
        manager: Connection manager owning the registries and the chat store
        session: Session the frame arrived on
        raw_text: Raw frame text
    """
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON from user {session.user_id}: {e}")
        return

    session.touch()

    frame = parse_client_frame(data)
    if frame is None:
        logger.warning(f"Malformed frame from user {session.user_id} dropped")
        return

    handler = _HANDLERS.get(frame.type)
    if handler is None:
        logger.info(f"Unknown WebSocket message type from user {session.user_id}: {frame.type}")
        return

    if frame.type in ROOM_SCOPED_FRAME_TYPES and frame.room_id is None:
        send_error(manager, session, ERR_ROOM_REQUIRED)
        return

    try:
        await handler(manager, session, frame)
    except Exception as e:
        logger.error(f"Error handling {frame.type} from user {session.user_id}: {e}", exc_info=True)
        send_error(manager, session, ERR_INTERNAL)


async def handle_chat(manager: "ConnectionManager", session: ClientSession, frame: ClientFrame):
    """Persist a chat message and broadcast it to the whole room, sender included."""
    room_key = frame.room_key
    if room_key not in session.rooms:
        send_error(manager, session, ERR_NOT_IN_ROOM)
        return

    content = frame.content or ""
    if not content.strip():
        send_error(manager, session, ERR_EMPTY_CONTENT)
        return

    store = manager.chat_store
    if not await run_in_threadpool(store.is_participant, frame.room_id, session.user_id):
        send_error(manager, session, ERR_NOT_PARTICIPANT)
        return

    blocked = await run_in_threadpool(store.is_blocked, frame.room_id, session.user_id)
    read_only = await run_in_threadpool(store.is_read_only, frame.room_id, session.user_id)
    if blocked or read_only:
        send_error(manager, session, ERR_CANNOT_SEND)
        return

    message_type = frame.message_type or "text"
    try:
        saved = await run_in_threadpool(
            store.save_message,
            frame.room_id,
            session.user_id,
            content,
            message_type,
            frame.reply_to_id,
            frame.metadata,
        )
    except Exception as e:
        logger.error(f"Failed to save message from user {session.user_id} in room {room_key}: {e}")
        send_error(manager, session, ERR_SAVE_FAILED)
        return

    try:
        await run_in_threadpool(store.touch_room_last_message, frame.room_id, saved.created_at)
    except Exception as e:
        # Message is already stored, deliver it anyway
        logger.warning(f"Failed to update last_message of room {room_key}: {e}")

    delivered = manager.broadcaster.to_room(room_key, WSMessage(
        message_id=saved.id,
        room_id=frame.room_id,
        sender_id=session.user_id,
        sender_name=session.username,
        content=content,
        message_type=message_type,
        reply_to_id=frame.reply_to_id,
        metadata=frame.metadata,
        created_at=saved.created_at,
    ))
    manager.metrics.message_broadcast()
    logger.debug(f"Message {saved.id} in room {room_key} delivered to {delivered} sessions")


async def handle_join_room(manager: "ConnectionManager", session: ClientSession, frame: ClientFrame):
    """Join a room after the chat store confirms participation."""
    is_participant = await run_in_threadpool(
        manager.chat_store.is_participant, frame.room_id, session.user_id
    )
    if not is_participant:
        logger.info(f"User {session.user_id} rejected from room {frame.room_id}: not a participant")
        send_error(manager, session, ERR_NOT_PARTICIPANT)
        return

    if session.closed:
        # Torn down while the store was queried
        return

    room_key = frame.room_key
    manager.rooms.join(session, room_key, frame.room_id)

    manager.broadcaster.to_session(session, WSRoomJoined(room_id=frame.room_id))
    manager.broadcaster.to_room(room_key, WSUserJoined(
        room_id=frame.room_id,
        user_id=session.user_id,
        username=session.username,
    ))
    logger.debug(f"User {session.user_id} joined room {room_key}")


async def handle_leave_room(manager: "ConnectionManager", session: ClientSession, frame: ClientFrame):
    """Leave a room; leaving a room that was never joined only confirms to the sender."""
    room_key = frame.room_key
    was_member = manager.rooms.leave(session, room_key)

    manager.broadcaster.to_session(session, WSRoomLeft(room_id=frame.room_id))
    if not was_member:
        return
    manager.broadcaster.to_room(room_key, WSUserLeft(
        room_id=frame.room_id,
        user_id=session.user_id,
        username=session.username,
    ))
    logger.debug(f"User {session.user_id} left room {room_key}")


async def handle_typing(manager: "ConnectionManager", session: ClientSession, frame: ClientFrame):
    room_key = frame.room_key
    if room_key not in session.rooms:
        return

    manager.broadcaster.to_room_except(room_key, session.user_id, WSTyping(
        room_id=frame.room_id,
        user_id=session.user_id,
        username=session.username,
    ))


async def handle_ping(manager: "ConnectionManager", session: ClientSession, frame: ClientFrame):
    manager.broadcaster.to_session(session, WSPong())


_HANDLERS: Dict[str, Callable[["ConnectionManager", ClientSession, ClientFrame], Awaitable[None]]] = {
    FRAME_CHAT: handle_chat,
    FRAME_JOIN_ROOM: handle_join_room,
    FRAME_LEAVE_ROOM: handle_leave_room,
    FRAME_TYPING: handle_typing,
    FRAME_PING: handle_ping,
}
