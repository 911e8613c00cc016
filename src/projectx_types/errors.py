"""Error registry entries and the JSON body returned for failed requests."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    INTERNAL = "internal"


class ErrorText(BaseModel):
    plain: str
    markdown: Optional[str] = None


class ErrorDefinition(BaseModel):
    """One entry of error_registry.yaml."""
    code: str = Field(..., pattern=r"^[A-Z]+_\d{3}$")
    http_status: int = Field(..., ge=400, le=599)
    category: ErrorCategory
    severity: ErrorSeverity
    title: str
    message: ErrorText
    retry_after: Optional[int] = Field(None, description="Seconds a client should wait before retrying")
    internal_description: str = ""

    model_config = ConfigDict(use_enum_values=True)


class ErrorRegistryFile(BaseModel):
    version: str
    errors: list[ErrorDefinition]


class ErrorDebugInfo(BaseModel):
    """Where an error was raised; only sent in development mode."""
    timestamp: str
    raised_in: Optional[str] = Field(None, description="function (file:line)")
    user_id: Optional[int] = None
    context: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[Any] = None
    severity: ErrorSeverity
    category: ErrorCategory
    retry_after: Optional[int] = None
    debug: Optional[ErrorDebugInfo] = None

    model_config = ConfigDict(use_enum_values=True)
