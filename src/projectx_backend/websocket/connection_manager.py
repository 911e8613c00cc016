"""
WebSocket Connection Manager.

Owns the connection and room registries, the broadcaster and the session
lifecycle: accept, read loop, write loop and a single idempotent teardown.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from fastapi import WebSocket

from projectx_backend.business_logic.chat import ChatStore, SqlChatStore
from projectx_backend.permissions.principal import Principal
from projectx_backend.settings import settings
from projectx_backend.websocket.broadcast import Broadcaster
from projectx_backend.websocket.handlers import handle_client_message
from projectx_backend.websocket.registry import ConnectionRegistry, RoomRegistry
from projectx_backend.websocket.session import ClientSession
from projectx_types.websocket import WSWelcome

logger = logging.getLogger(__name__)

# Close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_TOO_BIG = 1009
CLOSE_INTERNAL_ERROR = 1011


class WebSocketMetrics:
    """
    Simple metrics tracking for WebSocket connections.

    Tracks connection counts, message counts, and dropped sessions.
    """

    def __init__(self):
        self.total_connections = 0
        self.total_disconnections = 0
        self.total_messages_received = 0
        self.total_messages_broadcast = 0
        self.total_dropped_connections = 0
        self.total_replaced_connections = 0
        self.total_oversized_frames = 0
        self.total_idle_timeouts = 0
        self.total_connection_limit_hits = 0

    def connection_opened(self):
        self.total_connections += 1

    def connection_closed(self):
        self.total_disconnections += 1

    def message_received(self):
        self.total_messages_received += 1

    def message_broadcast(self):
        self.total_messages_broadcast += 1

    def connection_dropped(self):
        """Track a session torn down because its send queue was full."""
        self.total_dropped_connections += 1

    def connection_replaced(self):
        """Track a session replaced by a newer connection of the same user."""
        self.total_replaced_connections += 1

    def oversized_frame(self):
        self.total_oversized_frames += 1

    def idle_timeout(self):
        self.total_idle_timeouts += 1

    def connection_limit_hit(self):
        self.total_connection_limit_hits += 1

    def get_metrics(self) -> dict:
        """Get all metrics as a dictionary."""
        return {
            "total_connections": self.total_connections,
            "total_disconnections": self.total_disconnections,
            "active_connections": self.total_connections - self.total_disconnections,
            "total_messages_received": self.total_messages_received,
            "total_messages_broadcast": self.total_messages_broadcast,
            "total_dropped_connections": self.total_dropped_connections,
            "total_replaced_connections": self.total_replaced_connections,
            "total_oversized_frames": self.total_oversized_frames,
            "total_idle_timeouts": self.total_idle_timeouts,
            "total_connection_limit_hits": self.total_connection_limit_hits,
        }


class ConnectionLimitError(Exception):
    """Raised when connection limits are exceeded."""
    def __init__(self, message: str, code: int = 4008):
        self.message = message
        self.code = code
        super().__init__(message)


class ConnectionManager:
    """
    Manages chat WebSocket sessions.

    Features:
    - One live session per user; a new connection replaces the old one
    - Room membership through the RoomRegistry
    - Non-blocking fan-out; recipients with a full send queue are dropped
    - Explicit shutdown of every live session
    """

    def __init__(self, chat_store: Optional[ChatStore] = None):
        self.rooms = RoomRegistry()
        self.connections = ConnectionRegistry(self.rooms)
        self.broadcaster = Broadcaster(self.connections, self.rooms, on_overflow=self._drop)
        self.metrics = WebSocketMetrics()
        self._chat_store = chat_store
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False

    @property
    def chat_store(self) -> ChatStore:
        if self._chat_store is None:
            # Import here so the engine is only created when a store is needed
            from projectx_backend.database import SessionLocal
            self._chat_store = SqlChatStore(SessionLocal)
        return self._chat_store

    @chat_store.setter
    def chat_store(self, store: ChatStore):
        self._chat_store = store

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Bind the manager to the running event loop."""
        self._loop = asyncio.get_running_loop()
        if self._running:
            return
        self._running = True
        logger.info("ConnectionManager started")

    async def stop(self):
        """Tear down every live session and close its socket."""
        logger.info("Stopping ConnectionManager...")
        self._running = False

        sessions = self.connections.sessions()
        for session in sessions:
            session.close_code = CLOSE_GOING_AWAY
            self._teardown(session, "server shutdown")

        if sessions:
            try:
                await asyncio.wait_for(
                    asyncio.gather(
                        *(s.close_socket(CLOSE_GOING_AWAY, "Server shutting down") for s in sessions),
                        return_exceptions=True,
                    ),
                    timeout=settings.WS_SHUTDOWN_TIMEOUT,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Timeout closing {len(sessions)} WebSocket connections")

        self.rooms.clear()
        self._loop = None
        logger.info("ConnectionManager stopped")

    async def connect(self, websocket: WebSocket, principal: Principal) -> ClientSession:
        """
        Accept and register a new WebSocket connection.

        A live session of the same user is torn down first.

        Raises:
            ConnectionLimitError: If the server connection limit is reached
        """
        total_connections = self.get_connection_count()
        if total_connections >= settings.WS_MAX_TOTAL_CONNECTIONS:
            logger.warning(f"Total connection limit reached: {total_connections}/{settings.WS_MAX_TOTAL_CONNECTIONS}")
            self.metrics.connection_limit_hit()
            raise ConnectionLimitError("Server connection limit reached", code=4008)

        await websocket.accept()

        session = ClientSession(
            websocket,
            user_id=principal.user_id,
            username=principal.username,
            role=principal.role,
        )

        previous = self.connections.register(session)
        if previous is not None:
            self.metrics.connection_replaced()
            self._teardown(previous, "replaced by a new connection")

        self.metrics.connection_opened()
        self.broadcaster.to_session(session, WSWelcome(user_id=session.user_id, username=session.username))

        logger.info(f"WebSocket connected: user={session.user_id} conn={session.connection_id[:8]}, total={self.get_connection_count()}")
        return session

    async def serve(self, session: ClientSession):
        """
        Run a session until its read loop ends.

        The read loop runs in the caller's task and the write loop in its own
        task; both are finished when this returns.
        """
        writer = asyncio.create_task(session.write_loop())
        close_code = CLOSE_NORMAL
        try:
            close_code = await self.read_loop(session)
        except Exception as e:
            logger.error(f"Read loop for user {session.user_id} failed: {e}", exc_info=True)
            close_code = CLOSE_INTERNAL_ERROR
        finally:
            await self.disconnect(session, close_code)
            try:
                await asyncio.wait_for(writer, timeout=settings.WS_WRITE_WAIT)
            except asyncio.TimeoutError:
                logger.warning(f"Write loop for user {session.user_id} did not stop in time")

    async def read_loop(self, session: ClientSession) -> int:
        """
        Read frames one at a time and hand text frames to the message router.

        Returns:
            Close code for the socket
        """
        websocket = session.websocket
        # Dead peers are detected by the server's protocol pings
        idle_timeout = settings.WS_IDLE_TIMEOUT or None

        while True:
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=idle_timeout)
            except asyncio.TimeoutError:
                self.metrics.idle_timeout()
                logger.info(f"WebSocket idle timeout: user={session.user_id}")
                return CLOSE_NORMAL

            if message["type"] == "websocket.disconnect":
                return CLOSE_NORMAL

            if message["type"] != "websocket.receive":
                continue

            text = message.get("text")
            if text is None:
                # Binary frames are not part of the protocol
                continue

            size = len(text.encode("utf-8"))
            if size > settings.WS_READ_LIMIT:
                self.metrics.oversized_frame()
                logger.warning(f"Frame of {size} bytes from user {session.user_id} exceeds read limit")
                return CLOSE_TOO_BIG

            self.metrics.message_received()
            await handle_client_message(self, session, text)

    async def disconnect(self, session: ClientSession, code: int = CLOSE_NORMAL):
        """Tear a session down and close its socket. Safe to call repeatedly."""
        self._teardown(session, "connection closed")
        await session.close_socket(code)

    def _teardown(self, session: ClientSession, reason: str) -> bool:
        if not self.connections.unregister(session):
            return False

        self.metrics.connection_closed()
        logger.info(f"WebSocket disconnected: user={session.user_id} conn={session.connection_id[:8]} ({reason}), total={self.get_connection_count()}")
        return True

    def _drop(self, session: ClientSession):
        self.metrics.connection_dropped()
        self._teardown(session, "send queue full")

    def call_soon(self, fn: Callable[..., Any], *args):
        """
        Run ``fn(*args)`` on the manager's event loop.

        Runs inline when already on that loop (or when the manager was never
        started), otherwise schedules it thread-safely.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            fn(*args)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            fn(*args)
        else:
            loop.call_soon_threadsafe(fn, *args)

    def get_connection_count(self) -> int:
        return self.connections.count()

    def get_room_count(self) -> int:
        return self.rooms.room_count()

    def get_online_users(self) -> List[dict]:
        return self.connections.list_online()

    def get_metrics(self) -> dict:
        metrics = self.metrics.get_metrics()
        metrics["live_connections"] = self.get_connection_count()
        metrics["active_rooms"] = self.get_room_count()
        metrics["frames_delivered"] = self.broadcaster.total_delivered
        metrics["frames_dropped"] = self.broadcaster.total_dropped
        return metrics


# Global singleton instance
manager = ConnectionManager()
