from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRoomGet(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamChatResponse(BaseModel):
    message: str = "Team chat ready"
    room: ChatRoomGet


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, description="Message text")


class ChatMessageGet(BaseModel):
    id: int
    content: str
    sender: Optional[str] = Field(None, description="Username of the sender")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChatMessageCreated(BaseModel):
    message: str = "Message sent successfully"
    chat_message: ChatMessageGet


class ChatMessageList(BaseModel):
    messages: list[ChatMessageGet]
    page: int
    limit: int


class ChatMemberGet(BaseModel):
    id: int
    username: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class ChatMemberList(BaseModel):
    members: list[ChatMemberGet]
