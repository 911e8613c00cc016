"""
WebSocket Broadcast Service.

Fans serialized frames out to room members or single users. Every delivery is
a non-blocking enqueue onto the recipient's bounded send queue; a recipient
whose queue is full is handed to the overflow callback (which tears it down)
and delivery to everyone else continues.

Must be called on the event loop that owns the sessions. Code running in a
worker thread goes through ``ConnectionManager.call_soon``.
"""

import json
import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

from projectx_backend.websocket.registry import ConnectionRegistry, RoomRegistry
from projectx_backend.websocket.session import ClientSession

logger = logging.getLogger(__name__)


def serialize(payload: Any) -> str:
    """Serialize an outbound payload to a JSON text frame."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    return json.dumps(payload, default=str)


class Broadcaster:
    """
    Best-effort, at-most-once fan-out.

    Usage:
        broadcaster.to_room("42", WSMessage(...))
        broadcaster.to_room_except("42", user_id, WSTyping(...))
        broadcaster.to_user(user_id, Notification(...))
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        rooms: RoomRegistry,
        on_overflow: Optional[Callable[[ClientSession], None]] = None,
    ):
        self.connections = connections
        self.rooms = rooms
        self.on_overflow = on_overflow
        self.total_delivered = 0
        self.total_dropped = 0

    def _deliver(self, sessions: Iterable[ClientSession], data: str) -> int:
        delivered = 0
        for session in sessions:
            if session.enqueue(data):
                delivered += 1
                continue
            if session.closed:
                continue

            self.total_dropped += 1
            logger.warning(f"Send queue full for user {session.user_id}, dropping connection")
            if self.on_overflow is not None:
                self.on_overflow(session)

        self.total_delivered += delivered
        return delivered

    def to_room(self, room_key: str, payload: Any) -> int:
        """Deliver to every member of a room, sender included."""
        members = self.rooms.members(room_key)
        if not members:
            logger.debug(f"Broadcast to empty or unknown room {room_key} skipped")
            return 0
        return self._deliver(members, serialize(payload))

    def to_room_except(self, room_key: str, excluded_user_id: int, payload: Any) -> int:
        """Deliver to every member of a room except one user."""
        members = [s for s in self.rooms.members(room_key) if s.user_id != excluded_user_id]
        if not members:
            return 0
        return self._deliver(members, serialize(payload))

    def to_user(self, user_id: int, payload: Any) -> bool:
        """Deliver to a user's live session; no-op if the user is offline."""
        session = self.connections.lookup(user_id)
        if session is None:
            logger.debug(f"User {user_id} not connected, frame not sent")
            return False
        return self._deliver([session], serialize(payload)) == 1

    def to_session(self, session: ClientSession, payload: Any) -> bool:
        """Deliver straight to one session (replies to the sender)."""
        return self._deliver([session], serialize(payload)) == 1
