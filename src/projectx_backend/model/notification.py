from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey,
    Index, Integer, JSON, String, Text, func
)
from sqlalchemy.orm import relationship

from .base import Base


class Notification(Base):
    __tablename__ = 'notification'
    __table_args__ = (
        Index('notification_user_read_idx', 'user_id', 'is_read'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON)
    is_read = Column(Boolean, nullable=False, server_default='0')
    read_at = Column(DateTime(timezone=True))
    from_user_id = Column(ForeignKey('user.id', ondelete='SET NULL'), index=True)

    # Relationships
    user = relationship('User', foreign_keys=[user_id], back_populates='notifications')
    from_user = relationship('User', foreign_keys=[from_user_id])


class UserNotificationPreference(Base):
    __tablename__ = 'user_notification_preference'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True)
    task_assigned = Column(Boolean, nullable=False, server_default='1')
    task_updated = Column(Boolean, nullable=False, server_default='1')
    task_completed = Column(Boolean, nullable=False, server_default='1')
    task_commented = Column(Boolean, nullable=False, server_default='1')
    task_due_soon = Column(Boolean, nullable=False, server_default='1')
    project_created = Column(Boolean, nullable=False, server_default='1')
    user_joined = Column(Boolean, nullable=False, server_default='1')
    file_uploaded = Column(Boolean, nullable=False, server_default='1')
    email_notifications = Column(Boolean, nullable=False, server_default='0')
    push_notifications = Column(Boolean, nullable=False, server_default='1')
    in_app_notifications = Column(Boolean, nullable=False, server_default='1')

    # Relationships
    user = relationship('User', back_populates='notification_preference')
