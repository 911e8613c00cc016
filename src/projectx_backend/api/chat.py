from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from projectx_backend.api.limiter import limiter
from projectx_backend.business_logic.chat import (
    get_messages,
    get_or_create_team_chat,
    get_room_members,
    message_event,
    send_message,
)
from projectx_backend.database import get_db
from projectx_backend.permissions.auth import get_current_principal
from projectx_backend.permissions.principal import Principal
from projectx_backend.settings import settings
from projectx_backend.websocket.connection_manager import manager
from projectx_backend.websocket.notifications import ws_notifications
from projectx_types.chat import (
    ChatMemberGet,
    ChatMemberList,
    ChatMessageCreate,
    ChatMessageCreated,
    ChatMessageGet,
    ChatMessageList,
    ChatRoomGet,
    TeamChatResponse,
)
from projectx_types.websocket import WSStatus

chat_router = APIRouter(prefix="/api/chat")


@chat_router.get("/team-chat", response_model=TeamChatResponse)
async def team_chat(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    """Get (or create) the team chat room and join the caller to it."""
    room = get_or_create_team_chat(permissions, db)
    return TeamChatResponse(room=ChatRoomGet.model_validate(room))


@chat_router.post("/rooms/{room_id}/messages", response_model=ChatMessageCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def post_message(
    room_id: int,
    payload: ChatMessageCreate,
    request: Request,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    """Send a message over HTTP; live room members receive it like a WebSocket chat message."""
    message = send_message(room_id, permissions, payload.content, db)

    # Broadcast to WebSocket room members
    ws_notifications.chat_message_created(message_event(message, permissions.username))

    return ChatMessageCreated(chat_message=ChatMessageGet(
        id=message.id,
        content=message.content,
        sender=permissions.username,
        created_at=message.created_at,
    ))


@chat_router.get("/rooms/{room_id}/messages", response_model=ChatMessageList)
async def list_messages(
    room_id: int,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    page: int = Query(1),
    limit: int = Query(50),
    db: Session = Depends(get_db),
):
    """Room history, newest first."""
    return get_messages(room_id, permissions.user_id, page, limit, db)


@chat_router.get("/rooms/{room_id}/members", response_model=ChatMemberList)
async def list_members(
    room_id: int,
    permissions: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    members = get_room_members(room_id, db)
    return ChatMemberList(members=[ChatMemberGet.model_validate(user) for user in members])


@chat_router.get("/ws/status", response_model=WSStatus)
async def chat_ws_status(
    permissions: Annotated[Principal, Depends(get_current_principal)],
):
    """Connection count plus the list of online users."""
    return WSStatus(
        online_users=manager.get_connection_count(),
        users=manager.get_online_users(),
    )
