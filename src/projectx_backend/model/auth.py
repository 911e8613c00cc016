from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    __tablename__ = 'user'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(320), unique=True)
    password = Column(String(255))
    role = Column(String(63), nullable=False, server_default='employee')

    # Relationships
    chat_participations = relationship("ChatParticipant", back_populates="user", uselist=True, lazy="select")
    notifications = relationship("Notification", foreign_keys="Notification.user_id", back_populates="user", uselist=True, lazy="select")
    notification_preference = relationship("UserNotificationPreference", back_populates="user", uselist=False, lazy="select")
