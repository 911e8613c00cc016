"""
WebSocket package for real-time chat.

This package provides:
- Per-user client sessions with bounded send queues
- Lock-guarded connection and room registries
- Message routing for chat, room membership, typing and ping frames
- Non-blocking fan-out and a notification bridge for other services
"""

from projectx_backend.websocket.connection_manager import ConnectionManager, ConnectionLimitError, manager
from projectx_backend.websocket.notifications import NotificationBridge, ws_notifications

__all__ = [
    "ConnectionManager",
    "ConnectionLimitError",
    "manager",
    "NotificationBridge",
    "ws_notifications",
]
