"""
WebSocket authentication module.

Browsers cannot set headers on a WebSocket handshake, so the bearer token is
taken from the ``token`` query parameter first and from the
``Authorization: Bearer`` header otherwise.
"""

import logging
from typing import Optional

from fastapi import WebSocket
from starlette.concurrency import run_in_threadpool

from projectx_backend.database import SessionLocal
from projectx_backend.exceptions import ProjectXException, TokenExpiredException
from projectx_backend.permissions.auth import principal_from_token
from projectx_backend.permissions.principal import Principal

logger = logging.getLogger(__name__)

WS_CLOSE_UNAUTHORIZED = 4001


class WebSocketAuthError(Exception):
    """Exception raised when WebSocket authentication fails."""

    def __init__(self, code: int, reason: str):
        self.code = code
        self.reason = reason
        super().__init__(reason)


def extract_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token

    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    return None


def _resolve_principal(token: str) -> Principal:
    with SessionLocal() as db:
        return principal_from_token(token, db)


async def authenticate_websocket_token(token: Optional[str]) -> Principal:
    """
    Authenticate a WebSocket connection using a bearer token.

    Raises:
        WebSocketAuthError: If authentication fails
    """
    if not token:
        raise WebSocketAuthError(WS_CLOSE_UNAUTHORIZED, "No token provided")

    try:
        principal = await run_in_threadpool(_resolve_principal, token)
    except TokenExpiredException:
        raise WebSocketAuthError(WS_CLOSE_UNAUTHORIZED, "Token expired")
    except ProjectXException as e:
        logger.warning(f"WebSocket auth failed: {e.detail}")
        raise WebSocketAuthError(WS_CLOSE_UNAUTHORIZED, "Invalid or expired token")
    except Exception as e:
        logger.error(f"WebSocket authentication error: {e}")
        raise WebSocketAuthError(WS_CLOSE_UNAUTHORIZED, "Authentication failed")

    logger.debug(f"WebSocket authentication successful for user {principal.user_id}")
    return principal
