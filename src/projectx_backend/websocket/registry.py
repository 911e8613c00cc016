"""
Lock-guarded registries for live sessions and chat rooms.

ConnectionRegistry maps user IDs to their live ClientSession.
RoomRegistry maps room keys to Room objects and keeps each session's own
``rooms`` set in step with the room member sets: a session is in
``Room(key).members`` exactly when ``key`` is in ``session.rooms``.

All operations are total: leaving a room that was never joined or
unregistering twice are no-ops.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from projectx_backend.websocket.session import ClientSession

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """An active chat surface with at least one member."""
    key: str
    room_id: int
    members: Dict[int, ClientSession] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RoomRegistry:
    """
    Room bookkeeping. Performs no authorization.

    Rooms are created on first join and deleted as soon as they are empty.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    def join(self, session: ClientSession, room_key: str, room_id: int) -> bool:
        """
        Add a session to a room, creating the room if needed.

        Returns:
            True if the session was not already a member
        """
        with self._lock:
            room = self._rooms.get(room_key)
            if room is None:
                room = Room(key=room_key, room_id=room_id)
                self._rooms[room_key] = room
                logger.debug(f"Room {room_key} created")

            is_new = room.members.get(session.user_id) is not session
            room.members[session.user_id] = session
            session.rooms.add(room_key)
            return is_new

    def leave(self, session: ClientSession, room_key: str) -> bool:
        """
        Remove a session from a room; drops the room when it becomes empty.

        Returns:
            True if the session was a member
        """
        with self._lock:
            was_member = room_key in session.rooms
            session.rooms.discard(room_key)

            room = self._rooms.get(room_key)
            if room is None:
                return was_member

            # A newer session of the same user may hold the slot
            if room.members.get(session.user_id) is session:
                del room.members[session.user_id]

            if not room.members:
                del self._rooms[room_key]
                logger.debug(f"Room {room_key} removed (empty)")

            return was_member

    def leave_all(self, session: ClientSession) -> List[str]:
        """Remove a session from every room it joined."""
        with self._lock:
            room_keys = list(session.rooms)
            for room_key in room_keys:
                self.leave(session, room_key)
            return room_keys

    def members(self, room_key: str) -> List[ClientSession]:
        """Snapshot of a room's members (empty if the room does not exist)."""
        with self._lock:
            room = self._rooms.get(room_key)
            if room is None:
                return []
            return list(room.members.values())

    def get(self, room_key: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_key)

    def has_room(self, room_key: str) -> bool:
        with self._lock:
            return room_key in self._rooms

    def room_keys(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def clear(self):
        with self._lock:
            for room in self._rooms.values():
                for session in room.members.values():
                    session.rooms.discard(room.key)
            self._rooms.clear()


class ConnectionRegistry:
    """
    Live sessions keyed by user ID, one session per user.

    ``register`` returns the session it displaced so the caller can tear it
    down; ``unregister`` never evicts a session other than the one passed in.
    """

    def __init__(self, rooms: RoomRegistry):
        self._rooms = rooms
        self._sessions: Dict[int, ClientSession] = {}
        self._lock = threading.RLock()

    def register(self, session: ClientSession) -> Optional[ClientSession]:
        with self._lock:
            previous = self._sessions.get(session.user_id)
            self._sessions[session.user_id] = session
        if previous is session:
            return None
        return previous

    def unregister(self, session: ClientSession) -> bool:
        """
        Leave all rooms, drop the registry entry and close the send queue.

        Returns:
            True the first time a given session is torn down
        """
        self._rooms.leave_all(session)
        with self._lock:
            if self._sessions.get(session.user_id) is session:
                del self._sessions[session.user_id]
        return session.close()

    def lookup(self, user_id: int) -> Optional[ClientSession]:
        with self._lock:
            return self._sessions.get(user_id)

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def sessions(self) -> List[ClientSession]:
        with self._lock:
            return list(self._sessions.values())

    def list_online(self) -> List[dict]:
        with self._lock:
            return [session.snapshot() for session in self._sessions.values()]
