from .base import Base, metadata
from .auth import User
from .chat import ChatRoom, ChatParticipant, ChatMessage
from .notification import Notification, UserNotificationPreference

# Import all models to ensure relationships are properly set up
from . import (
    auth,
    chat,
    notification,
)

__all__ = [
    'Base',
    'metadata',
    'User',
    'ChatRoom',
    'ChatParticipant',
    'ChatMessage',
    'Notification',
    'UserNotificationPreference',
]
