from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey,
    Index, Integer, JSON, String, Text, func
)
from sqlalchemy.orm import relationship

from .base import Base

MESSAGE_TYPES = ('text', 'image', 'file', 'video', 'audio')
MESSAGE_STATUSES = ('sent', 'delivered', 'read')
CHAT_ROLES = ('member', 'read_only')


class ChatRoom(Base):
    __tablename__ = 'chat_room'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_by = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    max_members = Column(Integer, nullable=False, server_default='1000')
    last_message = Column(DateTime(timezone=True))

    # Relationships
    creator = relationship('User', foreign_keys=[created_by])
    participants = relationship('ChatParticipant', back_populates='chat_room', cascade='all, delete-orphan')
    messages = relationship('ChatMessage', back_populates='chat_room', cascade='all, delete-orphan')


class ChatParticipant(Base):
    __tablename__ = 'chat_participant'
    __table_args__ = (
        Index('chat_participant_room_user_idx', 'chat_room_id', 'user_id', unique=True),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    chat_room_id = Column(ForeignKey('chat_room.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    role = Column(Enum(*CHAT_ROLES, name='chat_role'), nullable=False, server_default='member')
    is_blocked = Column(Boolean, nullable=False, server_default='0')

    # Relationships
    chat_room = relationship('ChatRoom', back_populates='participants')
    user = relationship('User', back_populates='chat_participations')

    @property
    def is_read_only(self) -> bool:
        return self.role == 'read_only'


class ChatMessage(Base):
    __tablename__ = 'chat_message'
    __table_args__ = (
        Index('chat_message_room_created_idx', 'chat_room_id', 'created_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    chat_room_id = Column(ForeignKey('chat_room.id', ondelete='CASCADE'), nullable=False, index=True)
    sender_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(Enum(*MESSAGE_TYPES, name='chat_message_type'), nullable=False, server_default='text')
    status = Column(Enum(*MESSAGE_STATUSES, name='chat_message_status'), nullable=False, server_default='sent')
    reply_to_id = Column(ForeignKey('chat_message.id', ondelete='SET NULL'), index=True)
    properties = Column(JSON)

    # Relationships
    chat_room = relationship('ChatRoom', back_populates='messages')
    sender = relationship('User', foreign_keys=[sender_id])
    reply_to = relationship('ChatMessage', remote_side=[id])
