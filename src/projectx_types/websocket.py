"""
WebSocket frame DTOs for real-time chat.

Every frame is a JSON object with a ``type`` field.

Client -> Server frames share one shape (``ClientFrame``) and are told apart
by ``type``: chat, join_room, leave_room, typing, ping.

Server -> Client events: welcome, message, room_joined, room_left,
user_joined, user_left, typing, pong, heartbeat, error, plus the generic
``Notification`` pushed by task/HR/project services.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Client -> Server
# =============================================================================

FRAME_CHAT = "chat"
FRAME_JOIN_ROOM = "join_room"
FRAME_LEAVE_ROOM = "leave_room"
FRAME_TYPING = "typing"
FRAME_PING = "ping"

CLIENT_FRAME_TYPES = {FRAME_CHAT, FRAME_JOIN_ROOM, FRAME_LEAVE_ROOM, FRAME_TYPING, FRAME_PING}

ROOM_SCOPED_FRAME_TYPES = {FRAME_CHAT, FRAME_JOIN_ROOM, FRAME_LEAVE_ROOM, FRAME_TYPING}


class ClientFrame(BaseModel):
    """Inbound frame sent by a connected client."""
    type: str = Field(..., description="chat | join_room | leave_room | typing | ping")
    room_id: Optional[int] = Field(None, ge=0, description="Target chat room ID")
    content: Optional[str] = Field(None, description="Message text (chat only)")
    message_type: Optional[str] = Field(None, description="text | image | file | video | audio (chat only)")
    reply_to_id: Optional[int] = Field(None, ge=0, description="ID of the message being replied to (chat only)")
    metadata: Optional[dict[str, Any]] = Field(None, description="Free-form attachment metadata (chat only)")

    @property
    def room_key(self) -> Optional[str]:
        if self.room_id is None:
            return None
        return room_key_for(self.room_id)


def room_key_for(room_id: int) -> str:
    """Registry key for a chat room (the stringified numeric ID)."""
    return str(room_id)


def parse_client_frame(data: Any) -> Optional[ClientFrame]:
    """
    Validate decoded JSON into a ClientFrame.

    Returns:
        Parsed frame or None if the payload is not a valid frame object
    """
    if not isinstance(data, dict):
        return None
    try:
        return ClientFrame.model_validate(data)
    except ValidationError:
        return None


# =============================================================================
# Server -> Client
# =============================================================================

class WSEventBase(BaseModel):
    """Base class for all outbound events."""
    type: str
    timestamp: datetime = Field(default_factory=utcnow)


class WSWelcome(WSEventBase):
    """Sent once right after the connection is accepted."""
    type: Literal["welcome"] = "welcome"
    message: str = "Connected to chat server"
    user_id: int
    username: str


class WSMessage(WSEventBase):
    """A persisted chat message, broadcast to every room member."""
    type: Literal["message"] = "message"
    message_id: int
    room_id: int
    sender_id: int
    sender_name: str
    content: str
    message_type: str = "text"
    reply_to_id: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime


class WSRoomJoined(WSEventBase):
    type: Literal["room_joined"] = "room_joined"
    room_id: int
    message: str = "Successfully joined room"


class WSRoomLeft(WSEventBase):
    type: Literal["room_left"] = "room_left"
    room_id: int
    message: str = "Successfully left room"


class WSUserJoined(WSEventBase):
    type: Literal["user_joined"] = "user_joined"
    room_id: int
    user_id: int
    username: str


class WSUserLeft(WSEventBase):
    type: Literal["user_left"] = "user_left"
    room_id: int
    user_id: int
    username: str


class WSTyping(WSEventBase):
    """Typing indicator, delivered to everyone in the room except the typist."""
    type: Literal["typing"] = "typing"
    room_id: int
    user_id: int
    username: str


class WSPong(WSEventBase):
    type: Literal["pong"] = "pong"


class WSHeartbeat(WSEventBase):
    """Written by the server when a connection has been idle for a ping period."""
    type: Literal["heartbeat"] = "heartbeat"


class WSError(WSEventBase):
    type: Literal["error"] = "error"
    message: str = Field(..., description="Human-readable error message")


class Notification(BaseModel):
    """Structured non-chat notification (task assigned, HR problem update, ...)."""
    type: str
    title: str
    message: str
    data: Optional[Any] = None
    user_id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utcnow)


class OnlineUser(BaseModel):
    id: int
    username: str
    role: str
    last_seen: datetime


class WSStatus(BaseModel):
    online_users: int
    status: str = "running"
    users: Optional[list[OnlineUser]] = None
