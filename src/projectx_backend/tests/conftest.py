"""Pytest configuration and fixtures for projectx_backend tests."""

import os

# Must be set before projectx_backend.settings is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
from starlette.websockets import WebSocketState

from projectx_backend.business_logic.chat import SavedMessage
from projectx_backend.websocket.session import ClientSession


# ============================================================================
# Fakes
# ============================================================================


class FakeWebSocket:
    """In-memory stand-in for a Starlette WebSocket."""

    def __init__(self):
        self.sent: List[str] = []
        self.accepted = False
        self.closed = False
        self.close_code: Optional[int] = None
        self.fail_sends = False
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTED
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def accept(self):
        self.accepted = True
        self.application_state = WebSocketState.CONNECTED

    async def send_text(self, text: str):
        if self.fail_sends:
            raise RuntimeError("socket is broken")
        self.sent.append(text)

    async def close(self, code: int = 1000, reason: Optional[str] = None):
        self.closed = True
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    async def receive(self) -> dict:
        message = await self._incoming.get()
        if message["type"] == "websocket.disconnect":
            self.client_state = WebSocketState.DISCONNECTED
        return message

    def feed_text(self, text: str):
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def feed_json(self, data: dict):
        self.feed_text(json.dumps(data))

    def feed_bytes(self, data: bytes):
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def feed_disconnect(self, code: int = 1000):
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

    def frames(self) -> List[dict]:
        """Every JSON object written so far, coalesced frames split apart."""
        return [json.loads(line) for text in self.sent for line in text.split("\n")]


class FakeChatStore:
    """ChatStore keeping participants and messages in memory."""

    def __init__(self):
        self.participants: Dict[Tuple[int, int], str] = {}
        self.blocked: Set[Tuple[int, int]] = set()
        self.saved: List[Dict[str, Any]] = []
        self.touched: List[Tuple[int, datetime]] = []
        self.fail_save = False
        self.fail_touch = False

    def add_participant(self, room_id: int, user_id: int, role: str = "member", blocked: bool = False):
        self.participants[(room_id, user_id)] = role
        if blocked:
            self.blocked.add((room_id, user_id))

    def is_participant(self, room_id: int, user_id: int) -> bool:
        return (room_id, user_id) in self.participants

    def is_blocked(self, room_id: int, user_id: int) -> bool:
        return (room_id, user_id) in self.blocked

    def is_read_only(self, room_id: int, user_id: int) -> bool:
        return self.participants.get((room_id, user_id)) == "read_only"

    def save_message(self, room_id, sender_id, content, message_type="text", reply_to_id=None, metadata=None):
        if self.fail_save:
            raise RuntimeError("database unavailable")
        saved = SavedMessage(id=1000 + len(self.saved), created_at=datetime.now(timezone.utc))
        self.saved.append({
            "id": saved.id,
            "room_id": room_id,
            "sender_id": sender_id,
            "content": content,
            "message_type": message_type,
            "reply_to_id": reply_to_id,
            "metadata": metadata,
        })
        return saved

    def touch_room_last_message(self, room_id: int, at: datetime) -> None:
        if self.fail_touch:
            raise RuntimeError("database unavailable")
        self.touched.append((room_id, at))


# ============================================================================
# Helpers
# ============================================================================


def make_session(user_id: int, username: Optional[str] = None, role: str = "employee", queue_size: Optional[int] = None) -> ClientSession:
    return ClientSession(
        FakeWebSocket(),
        user_id=user_id,
        username=username or f"user{user_id}",
        role=role,
        queue_size=queue_size,
    )


def drain(session: ClientSession) -> List[dict]:
    """Pop every queued frame of a session without running its write loop."""
    frames = []
    while session.pending:
        item = session._queue.get_nowait()
        if isinstance(item, str):
            frames.append(json.loads(item))
    return frames


def frame_types(frames: List[dict]) -> List[str]:
    return [frame["type"] for frame in frames]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def chat_store() -> FakeChatStore:
    return FakeChatStore()


@pytest.fixture
def ws_manager(chat_store):
    """A fresh ConnectionManager wired to the in-memory chat store."""
    from projectx_backend.websocket.connection_manager import ConnectionManager
    return ConnectionManager(chat_store=chat_store)


@pytest.fixture
def db():
    """Session on a freshly created in-memory schema."""
    from projectx_backend.database import SessionLocal, get_engine
    from projectx_backend.model import Base

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    from projectx_backend.model.auth import User

    def _make_user(username: str, role: str = "employee") -> User:
        user = User(username=username, email=f"{username}@example.com", role=role)
        db.add(user)
        db.commit()
        return user

    return _make_user
