"""
Standardized error catalog for ProjectHub access control.

Centralizes the error codes and messages returned when an access decision
is enforced over HTTP or a grant/revoke operation fails.
"""
from enum import Enum
from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    AccessStoreError,
    AuthenticationError,
    AuthorizationError,
    InvalidStateTransitionError,
    NotFoundError,
    ProjectHubException,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication Errors (AUTH_*)
    AUTH_NOT_AUTHENTICATED = "AUTH_001"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_002"

    # Validation Errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_001"

    # Business Logic Errors (BUS_*)
    BUS_RESOURCE_NOT_FOUND = "BUS_001"
    BUS_INVALID_STATE_TRANSITION = "BUS_002"

    # System Errors (SYS_*)
    SYS_INTERNAL_ERROR = "SYS_001"
    SYS_ACCESS_STORE_ERROR = "SYS_002"


class ErrorMessages:
    """Centralized error message definitions."""

    _messages: Dict[ErrorCode, str] = {
        ErrorCode.AUTH_NOT_AUTHENTICATED: "Authentication required",
        ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: "You don't have permission to perform this action",
        ErrorCode.VAL_INVALID_INPUT: "Invalid input provided",
        ErrorCode.BUS_RESOURCE_NOT_FOUND: "Requested resource not found",
        ErrorCode.BUS_INVALID_STATE_TRANSITION: "Invalid state transition",
        ErrorCode.SYS_INTERNAL_ERROR: "An internal error occurred. Please try again later",
        ErrorCode.SYS_ACCESS_STORE_ERROR: "Could not save access changes. Please try again later",
    }

    @classmethod
    def get(cls, code: ErrorCode) -> str:
        """
        Get error message for a given error code.

        Args:
            code: Error code

        Returns:
            Error message
        """
        return cls._messages.get(code, "An error occurred")


# Most specific classes first; lookup walks this in order.
_EXCEPTION_CODES = (
    (InvalidStateTransitionError, ErrorCode.BUS_INVALID_STATE_TRANSITION),
    (ValidationError, ErrorCode.VAL_INVALID_INPUT),
    (NotFoundError, ErrorCode.BUS_RESOURCE_NOT_FOUND),
    (AuthenticationError, ErrorCode.AUTH_NOT_AUTHENTICATED),
    (AuthorizationError, ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS),
    (AccessStoreError, ErrorCode.SYS_ACCESS_STORE_ERROR),
)


def error_code_for(exc: ProjectHubException) -> ErrorCode:
    """Map an application exception to its public error code."""
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return code
    return ErrorCode.SYS_INTERNAL_ERROR


class ErrorResponse:
    """Standardized error response structure."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict] = None,
        field: Optional[str] = None,
    ):
        self.code = code
        self.message = message or ErrorMessages.get(code)
        self.details = details or {}
        self.field = field

    def to_dict(self) -> Dict:
        """Convert to dictionary for API response."""
        response = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }

        if self.field:
            response["error"]["field"] = self.field

        if self.details:
            response["error"]["details"] = self.details

        return response

    @classmethod
    def from_exception(cls, exc: ProjectHubException) -> "ErrorResponse":
        """Build the response body for an application exception."""
        code = error_code_for(exc)
        details = dict(exc.details)
        field = details.pop("field", None)

        # Store failures keep their internals out of the response body
        if code is ErrorCode.SYS_ACCESS_STORE_ERROR:
            return cls(code=code)

        return cls(code=code, message=exc.message, details=details, field=field)

    @classmethod
    def authorization_error(
        cls,
        resource: Optional[str] = None,
        action: Optional[str] = None,
    ) -> "ErrorResponse":
        """Create authorization error response."""
        details = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action

        return cls(
            code=ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS,
            details=details,
        )


async def project_hub_exception_handler(
    request: Request,
    exc: ProjectHubException,
) -> JSONResponse:
    """Render application exceptions as standardized JSON errors."""
    logger.warning(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_exception(exc).to_dict(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ProjectHub exception handlers on a host application."""
    app.add_exception_handler(ProjectHubException, project_hub_exception_handler)
