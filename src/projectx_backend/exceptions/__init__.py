"""
Error handling for the ProjectX backend.

Usage:
    from projectx_backend.exceptions import ChatAccessDeniedException

    raise ChatAccessDeniedException(detail="User is not in the chat room")
"""

from projectx_backend.exceptions.exceptions import (
    ProjectXException,
    UnauthorizedException,
    TokenExpiredException,
    ForbiddenException,
    ChatAccessDeniedException,
    BadRequestException,
    NotFoundException,
    RateLimitException,
    InternalServerException,
    ServiceUnavailableException,
)
from projectx_backend.exceptions.error_registry import (
    get_all_error_codes,
    get_error_definition,
    load_error_registry,
)
from projectx_backend.exceptions.error_handlers import register_exception_handlers

__all__ = [
    "ProjectXException",
    "UnauthorizedException",
    "TokenExpiredException",
    "ForbiddenException",
    "ChatAccessDeniedException",
    "BadRequestException",
    "NotFoundException",
    "RateLimitException",
    "InternalServerException",
    "ServiceUnavailableException",
    "get_all_error_codes",
    "get_error_definition",
    "load_error_registry",
    "register_exception_handlers",
]
