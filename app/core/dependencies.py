"""
Dependency injection for FastAPI.

Host applications import their access-control dependencies from here.
"""
from app.services.auth.authorization.decorators import (
    get_access_service,
    get_authorization_service,
    get_current_principal,
    require_principal,
)

__all__ = [
    "get_access_service",
    "get_authorization_service",
    "get_current_principal",
    "require_principal",
]
