"""
Notification bridge.

Lets task, HR and project services push structured notifications to a user
or a room without knowing anything about connections. Safe to call from
sync endpoints running in a worker thread.

Usage:
    from projectx_backend.websocket.notifications import ws_notifications

    ws_notifications.send_to_user(user_id, Notification(
        type="task_assigned",
        title="New Task Assigned",
        message="You have been assigned to task: Release notes",
        data={"task_id": 12},
    ))
"""

import logging
from typing import Optional

from projectx_backend.websocket.connection_manager import ConnectionManager, manager
from projectx_types.websocket import Notification, WSMessage, room_key_for

logger = logging.getLogger(__name__)


class NotificationBridge:

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        self._manager = connection_manager

    @property
    def manager(self) -> ConnectionManager:
        return self._manager or manager

    def send_to_user(self, user_id: int, notification: Notification):
        """Push a notification to a user's live session; logged no-op when offline."""
        if notification.user_id is None:
            notification = notification.model_copy(update={"user_id": user_id})
        self.manager.call_soon(self._send_to_user, user_id, notification)

    def broadcast_to_room(self, room_key: str, notification: Notification):
        """Push a notification to every member of a room; logged no-op when the room is inactive."""
        self.manager.call_soon(self._broadcast_to_room, room_key, notification)

    def chat_message_created(self, event: WSMessage):
        """Broadcast a message persisted outside the WebSocket (e.g. over REST)."""
        self.manager.call_soon(self._broadcast_to_room, room_key_for(event.room_id), event)

    def _send_to_user(self, user_id: int, notification: Notification):
        if self.manager.broadcaster.to_user(user_id, notification):
            logger.debug(f"Notification sent to user {user_id}")
        else:
            logger.info(f"User {user_id} not connected, notification not sent")

    def _broadcast_to_room(self, room_key: str, payload):
        if not self.manager.rooms.has_room(room_key):
            logger.info(f"Room {room_key} not active, notification not sent")
            return
        delivered = self.manager.broadcaster.to_room(room_key, payload)
        logger.debug(f"Notification sent to {delivered} sessions in room {room_key}")


# Global bridge bound to the global connection manager
ws_notifications = NotificationBridge()
