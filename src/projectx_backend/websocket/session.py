"""
Per-connection state for the chat WebSocket.

A ClientSession exclusively owns its socket and its bounded outbound queue.
The registries only hold references to it.
"""

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from projectx_backend.settings import settings
from projectx_types.websocket import WSHeartbeat

logger = logging.getLogger(__name__)

# Enqueued by close() to wake the write loop
_CLOSE = object()


class ClientSession:
    """
    One live WebSocket connection of an authenticated user.

    The send queue is bounded; producers never block on it. ``close()`` is the
    only way to stop the write loop and may be called any number of times.
    """

    def __init__(
        self,
        websocket: WebSocket,
        user_id: int,
        username: str,
        role: str,
        queue_size: Optional[int] = None,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.username = username
        self.role = role
        self.connection_id = uuid.uuid4().hex
        self.rooms: Set[str] = set()
        self.last_seen = datetime.now(timezone.utc)
        self.connected_at = self.last_seen
        # Close code the write loop uses when it closes the socket itself
        self.close_code = 1000

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.WS_SEND_QUEUE_SIZE)
        self._closed = False
        self._socket_closed = False
        self._close_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<ClientSession user={self.user_id} conn={self.connection_id[:8]}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of frames waiting to be written."""
        return self._queue.qsize()

    def touch(self):
        self.last_seen = datetime.now(timezone.utc)

    def enqueue(self, data: str) -> bool:
        """
        Try to queue a serialized frame without waiting.

        Returns:
            False if the session is closed or its queue is full
        """
        if self._closed:
            return False
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> bool:
        """
        Close the outbound queue once.

        Pending frames are discarded and the write loop is woken up so it can
        exit and close the socket.

        Returns:
            True on the first call, False afterwards
        """
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True

            while True:
                try:
                    self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
            self._queue.put_nowait(_CLOSE)
            return True

    async def close_socket(self, code: int = 1000, reason: str = ""):
        """Close the underlying socket; later calls are no-ops."""
        if self._socket_closed:
            return
        self._socket_closed = True

        if WebSocketState.DISCONNECTED in (self.websocket.application_state, self.websocket.client_state):
            return
        try:
            await asyncio.wait_for(
                self.websocket.close(code=code, reason=reason),
                timeout=settings.WS_WRITE_WAIT,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timeout closing socket for user {self.user_id}")
        except Exception as e:
            # Peer already gone or close frame already sent
            logger.debug(f"Socket close for user {self.user_id} ignored: {e}")

    async def _write(self, text: str):
        await asyncio.wait_for(self.websocket.send_text(text), timeout=settings.WS_WRITE_WAIT)

    async def write_loop(self, ping_period: Optional[float] = None):
        """
        Drain the send queue to the socket.

        All frames queued since the last write are coalesced into one text
        frame, separated by newlines. When nothing was written for a whole ping
        period a heartbeat frame is sent instead. Exits on close() or on the
        first failed write, closing the socket in both cases.
        """
        ping_period = ping_period or settings.WS_PING_PERIOD
        try:
            while True:
                try:
                    item = await asyncio.wait_for(self._queue.get(), timeout=ping_period)
                except asyncio.TimeoutError:
                    await self._write(WSHeartbeat().model_dump_json())
                    continue

                if item is _CLOSE:
                    return

                batch = [item]
                while not self._queue.empty():
                    queued = self._queue.get_nowait()
                    if queued is _CLOSE:
                        return
                    batch.append(queued)

                await self._write("\n".join(batch))
        except Exception as e:
            logger.info(f"Write loop for user {self.user_id} ended: {e}")
        finally:
            await self.close_socket(self.close_code)

    def snapshot(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "role": self.role,
            "last_seen": self.last_seen,
        }
