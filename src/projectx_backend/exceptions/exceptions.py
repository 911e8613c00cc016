"""
Exception classes carrying a registry error code.

Subclasses only pick a default code; the HTTP status and the fallback message
come from ``error_registry.yaml``. Pass the human-readable text as ``detail=``::

    raise ChatAccessDeniedException(detail="User is not in the chat room")
"""

import inspect
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

from projectx_backend.exceptions.error_registry import get_error_definition
from projectx_types.errors import ErrorDebugInfo, ErrorResponse


def _raised_in() -> Optional[str]:
    # Skip this helper, ProjectXException.__init__ and the subclass constructor chain
    frame = inspect.currentframe()
    while frame is not None and frame.f_code.co_filename == __file__:
        frame = frame.f_back
    if frame is None:
        return None
    return f"{frame.f_code.co_name} ({frame.f_code.co_filename}:{frame.f_lineno})"


class ProjectXException(HTTPException):
    """Base class of every error returned as ``{"error_code", "message"}``."""

    default_code = "INT_001"

    def __init__(
        self,
        error_code: Optional[str] = None,
        detail: Any = None,
        headers: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None,
    ):
        self.error_code = error_code or self.default_code
        self.definition = get_error_definition(self.error_code)
        self.context = context or {}
        self.user_id = user_id
        self.raised_in = _raised_in()
        # HTTPException replaces a missing detail with the status phrase
        self._message = detail if isinstance(detail, str) and detail else None
        super().__init__(status_code=self.definition.http_status, detail=detail, headers=headers)

    def to_error_response(self, include_debug: bool = False) -> ErrorResponse:
        message = self.definition.message.plain
        details = self.context or None

        if self._message is not None:
            message = self._message
        elif isinstance(self.detail, dict):
            details = self.detail
            message = self.detail.get("message", message)

        debug = None
        if include_debug:
            debug = ErrorDebugInfo(
                timestamp=datetime.now(timezone.utc).isoformat(),
                raised_in=self.raised_in,
                user_id=self.user_id,
                context=self.context or None,
            )

        return ErrorResponse(
            error_code=self.error_code,
            message=message,
            details=details,
            severity=self.definition.severity,
            category=self.definition.category,
            retry_after=self.definition.retry_after,
            debug=debug,
        )


class UnauthorizedException(ProjectXException):
    default_code = "AUTH_001"


class TokenExpiredException(ProjectXException):
    default_code = "AUTH_002"


class ForbiddenException(ProjectXException):
    default_code = "PERM_001"


class ChatAccessDeniedException(ProjectXException):
    """Caller has no participant row for the chat room."""
    default_code = "PERM_002"


class BadRequestException(ProjectXException):
    default_code = "VAL_001"


class NotFoundException(ProjectXException):
    default_code = "NF_001"


class RateLimitException(ProjectXException):
    default_code = "RATE_001"


class InternalServerException(ProjectXException):
    default_code = "INT_001"


class ServiceUnavailableException(ProjectXException):
    """Database pool exhausted or another dependency temporarily down."""
    default_code = "DB_001"
