"""
FastAPI exception handlers.

Every failed request gets a body of the form::

    {"error_code": "PERM_002", "message": "User is not in the chat room"}

plus ``details`` for validation errors and ``debug`` in development mode.
"""

import logging
import traceback
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from projectx_backend.exceptions.exceptions import (
    BadRequestException,
    ForbiddenException,
    InternalServerException,
    NotFoundException,
    ProjectXException,
    RateLimitException,
    UnauthorizedException,
)
from projectx_backend.settings import settings

logger = logging.getLogger(__name__)

_STATUS_EXCEPTIONS = {
    status.HTTP_400_BAD_REQUEST: BadRequestException,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedException,
    status.HTTP_403_FORBIDDEN: ForbiddenException,
    status.HTTP_404_NOT_FOUND: NotFoundException,
    status.HTTP_429_TOO_MANY_REQUESTS: RateLimitException,
}


def _debug_enabled() -> bool:
    # Never expose file paths outside development
    return settings.DEBUG_MODE.lower() in ("dev", "development", "local") and not settings.DISABLE_API_DEBUG_INFO


def error_response(exc: ProjectXException, details: Optional[dict] = None) -> JSONResponse:
    include_debug = _debug_enabled()
    body = exc.to_error_response(include_debug=include_debug)

    content = {"error_code": body.error_code, "message": body.message}
    if details:
        content["details"] = details
    if body.debug is not None:
        content["debug"] = body.debug.model_dump(exclude_none=True)

    headers = dict(exc.headers or {})
    if body.retry_after and "Retry-After" not in headers:
        headers["Retry-After"] = str(body.retry_after)

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


def log_error(request: Request, exc: ProjectXException) -> None:
    message = f"{exc.error_code} on {request.method} {request.url.path}"
    extra = {
        "error_code": exc.error_code,
        "status_code": exc.status_code,
        "user_id": exc.user_id,
        "raised_in": exc.raised_in,
        "context": exc.context,
    }
    if exc.status_code >= 500:
        logger.error(message, extra=extra)
    else:
        logger.warning(message, extra=extra)


async def projectx_exception_handler(request: Request, exc: ProjectXException) -> JSONResponse:
    log_error(request, exc)
    return error_response(exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report pydantic errors per field as VAL_001."""
    errors = [
        {
            # Drop the leading "body" / "query" / "path" segment
            "field": " -> ".join(str(part) for part in error["loc"][1:]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.method} {request.url.path}: {len(errors)} field(s)")

    bad_request = BadRequestException(
        detail="Request validation failed",
        context={"validation_errors": errors},
    )
    return error_response(bad_request, {"validation_errors": errors} if errors else None)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Re-wrap plain HTTPExceptions (404 for unknown routes, 405, ...) in the registry format."""
    exception_class = _STATUS_EXCEPTIONS.get(exc.status_code, InternalServerException)
    wrapped = exception_class(detail=exc.detail, headers=getattr(exc, "headers", None))
    return await projectx_exception_handler(request, wrapped)


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    wrapped = RateLimitException(
        detail=f"Rate limit exceeded: {exc.detail}",
        context={"limit": str(exc.detail)},
    )
    return await projectx_exception_handler(request, wrapped)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)

    context = {"exception_type": type(exc).__name__}
    if _debug_enabled():
        context["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return error_response(InternalServerException(detail="An unexpected error occurred", context=context))


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ProjectXException, projectx_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.info("Registered exception handlers")
