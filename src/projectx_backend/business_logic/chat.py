"""
Business logic for chat rooms and chat messages.

Two layers live here:
- ``ChatStore`` / ``SqlChatStore``: the narrow participant and message store
  the WebSocket message router talks to. Each call opens its own session.
- REST operations (team chat, history, members, sending over HTTP) that take
  the request's ``Session`` like the rest of the business logic.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol

from sqlalchemy.orm import Session, joinedload

from projectx_backend.exceptions import (
    BadRequestException,
    ChatAccessDeniedException,
    ForbiddenException,
    NotFoundException,
)
from projectx_backend.model.auth import User
from projectx_backend.model.chat import MESSAGE_TYPES, ChatMessage, ChatParticipant, ChatRoom
from projectx_backend.permissions.principal import Principal
from projectx_backend.settings import settings
from projectx_types.chat import ChatMessageGet, ChatMessageList
from projectx_types.websocket import WSMessage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100
TEAM_CHAT_DESCRIPTION = "Main chat room for all team members"


@dataclass(frozen=True)
class SavedMessage:
    """Identity assigned to a chat message by the store."""
    id: int
    created_at: datetime


class ChatStore(Protocol):
    """Participant and message store used by the WebSocket message router."""

    def is_participant(self, room_id: int, user_id: int) -> bool: ...

    def is_blocked(self, room_id: int, user_id: int) -> bool: ...

    def is_read_only(self, room_id: int, user_id: int) -> bool: ...

    def save_message(
        self,
        room_id: int,
        sender_id: int,
        content: str,
        message_type: str = "text",
        reply_to_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SavedMessage: ...

    def touch_room_last_message(self, room_id: int, at: datetime) -> None: ...


def _get_participant(db: Session, room_id: int, user_id: int) -> Optional[ChatParticipant]:
    return (
        db.query(ChatParticipant)
        .filter(
            ChatParticipant.chat_room_id == room_id,
            ChatParticipant.user_id == user_id,
        )
        .first()
    )


class SqlChatStore:
    """ChatStore backed by the chat_* tables."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def is_participant(self, room_id: int, user_id: int) -> bool:
        with self._session_factory() as db:
            return _get_participant(db, room_id, user_id) is not None

    def is_blocked(self, room_id: int, user_id: int) -> bool:
        with self._session_factory() as db:
            participant = _get_participant(db, room_id, user_id)
            return participant is not None and bool(participant.is_blocked)

    def is_read_only(self, room_id: int, user_id: int) -> bool:
        with self._session_factory() as db:
            participant = _get_participant(db, room_id, user_id)
            return participant is not None and participant.is_read_only

    def save_message(
        self,
        room_id: int,
        sender_id: int,
        content: str,
        message_type: str = "text",
        reply_to_id: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SavedMessage:
        if message_type not in MESSAGE_TYPES:
            raise ValueError(f"Unsupported message type: {message_type}")

        with self._session_factory() as db:
            message = ChatMessage(
                chat_room_id=room_id,
                sender_id=sender_id,
                content=content,
                type=message_type,
                status="sent",
                reply_to_id=reply_to_id,
                properties=metadata,
                created_at=datetime.now(timezone.utc),
            )
            db.add(message)
            db.commit()
            return SavedMessage(id=message.id, created_at=message.created_at)

    def touch_room_last_message(self, room_id: int, at: datetime) -> None:
        with self._session_factory() as db:
            db.query(ChatRoom).filter(ChatRoom.id == room_id).update({ChatRoom.last_message: at})
            db.commit()


# =============================================================================
# REST operations
# =============================================================================

def get_team_chat_room(db: Session) -> Optional[ChatRoom]:
    return db.query(ChatRoom).filter(ChatRoom.name == settings.TEAM_CHAT_NAME).first()


def join_team_chat(room_id: int, user_id: int, db: Session) -> ChatParticipant:
    """Add a user to a room; joining twice returns the existing participant."""
    participant = _get_participant(db, room_id, user_id)
    if participant is not None:
        return participant

    participant = ChatParticipant(
        chat_room_id=room_id,
        user_id=user_id,
        joined_at=datetime.now(timezone.utc),
        role="member",
        is_blocked=False,
    )
    db.add(participant)
    db.commit()
    return participant


def create_team_chat(name: str, description: str, created_by: int, db: Session) -> ChatRoom:
    """
    Create the team chat room unless a room with that name exists.

    The creator is joined automatically.
    """
    room = db.query(ChatRoom).filter(ChatRoom.name == name).first()
    if room is not None:
        return room

    room = ChatRoom(
        name=name,
        description=description,
        created_by=created_by,
        max_members=1000,
        created_at=datetime.now(timezone.utc),
    )
    db.add(room)
    db.commit()
    logger.info(f"Created chat room '{name}' (id={room.id})")

    join_team_chat(room.id, created_by, db)
    return room


def get_or_create_team_chat(principal: Principal, db: Session) -> ChatRoom:
    """Return the team chat room, creating it if needed, and make sure the caller is in it."""
    room = get_team_chat_room(db)
    if room is None:
        room = create_team_chat(settings.TEAM_CHAT_NAME, TEAM_CHAT_DESCRIPTION, principal.user_id, db)

    join_team_chat(room.id, principal.user_id, db)
    return room


def send_message(room_id: int, principal: Principal, content: str, db: Session) -> ChatMessage:
    """
    Persist a text message sent over HTTP.

    Applies the same rules as the WebSocket router: participants only,
    blocked or read-only participants may not post, content must not be blank.

    Raises:
        ChatAccessDeniedException: If the caller is not a participant
        ForbiddenException: If the caller is blocked or read-only
        BadRequestException: If the content is blank
    """
    participant = _get_participant(db, room_id, principal.user_id)
    if participant is None:
        raise ChatAccessDeniedException(detail="User is not in the chat room")

    if participant.is_blocked or participant.is_read_only:
        raise ForbiddenException(detail="You cannot send messages to this room")

    if not content.strip():
        raise BadRequestException(detail="Message content cannot be empty")

    now = datetime.now(timezone.utc)
    message = ChatMessage(
        chat_room_id=room_id,
        sender_id=principal.user_id,
        content=content,
        type="text",
        status="sent",
        created_at=now,
    )
    db.add(message)
    db.query(ChatRoom).filter(ChatRoom.id == room_id).update({ChatRoom.last_message: now})
    db.commit()

    return message


def message_event(message: ChatMessage, sender_name: str) -> WSMessage:
    """Build the ``message`` frame broadcast for a persisted chat message."""
    return WSMessage(
        message_id=message.id,
        room_id=message.chat_room_id,
        sender_id=message.sender_id,
        sender_name=sender_name,
        content=message.content,
        message_type=message.type or "text",
        reply_to_id=message.reply_to_id,
        metadata=message.properties,
        created_at=message.created_at,
    )


def get_messages(room_id: int, user_id: int, page: int, limit: int, db: Session) -> ChatMessageList:
    """
    Page through a room's history, newest first.

    Out-of-range paging values fall back to page 1 / 50 messages.
    """
    if _get_participant(db, room_id, user_id) is None:
        raise ChatAccessDeniedException(detail="User is not in the chat room")

    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        limit = DEFAULT_PAGE_LIMIT

    messages = (
        db.query(ChatMessage)
        .options(joinedload(ChatMessage.sender))
        .filter(ChatMessage.chat_room_id == room_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return ChatMessageList(
        messages=[
            ChatMessageGet(
                id=message.id,
                content=message.content,
                sender=message.sender.username if message.sender else None,
                created_at=message.created_at,
            )
            for message in messages
        ],
        page=page,
        limit=limit,
    )


def get_room_members(room_id: int, db: Session) -> List[User]:
    if db.query(ChatRoom.id).filter(ChatRoom.id == room_id).first() is None:
        raise NotFoundException(detail=f"Chat room {room_id} not found")

    return (
        db.query(User)
        .join(ChatParticipant, ChatParticipant.user_id == User.id)
        .filter(ChatParticipant.chat_room_id == room_id)
        .order_by(User.id)
        .all()
    )
