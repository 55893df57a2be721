"""
Custom exceptions for the application.
"""
from typing import Any, Dict, Optional


class ProjectHubException(Exception):
    """Base exception for all ProjectHub exceptions."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ProjectHubException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Any):
        message = f"{resource} with ID {resource_id} not found"
        details = {"resource": resource, "resource_id": str(resource_id)}
        super().__init__(message, status_code=404, details=details)


class ValidationError(ProjectHubException):
    """Validation error exception."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, status_code=422, details=details)


class InvalidStateTransitionError(ValidationError):
    """Raised when a record is moved to a status it cannot reach."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change status from '{current}' to '{requested}'",
            field="status",
        )
        self.details.update({"current": current, "requested": requested})


class AuthenticationError(ProjectHubException):
    """Authentication error exception."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class AuthorizationError(ProjectHubException):
    """Authorization error exception."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


class ExternalServiceError(ProjectHubException):
    """External service error exception."""

    def __init__(self, service: str, message: str):
        full_message = f"External service error ({service}): {message}"
        super().__init__(full_message, status_code=503, details={"service": service})


class AccessStoreError(ExternalServiceError):
    """The data store holding memberships and assignments rejected an operation."""

    def __init__(self, operation: str, message: str):
        super().__init__("access_store", message)
        self.details["operation"] = operation
