"""
Authorization dependencies for FastAPI endpoints.

Turns authorization decisions into HTTP responses for server callers: a
missing principal becomes 401 and a denied decision becomes 403. The
principal is identified by ``request.state.user_id``, which the host
application's authentication layer sets.
"""

from typing import Callable, Optional, Union

import structlog
from fastapi import Depends, HTTPException, Request, status

from app.domain.schemas.access import Principal
from app.services.access import AccessService, access_service

from .authorization import AuthorizationService, authorization_service
from .permissions import Capability, Module
from .rbac import UserRole

logger = structlog.get_logger(__name__)


class AccessDeniedError(HTTPException):
    """Authorization-specific HTTP exception."""

    def __init__(
        self,
        detail: str = "Not authorized to access this resource",
        status_code: int = status.HTTP_403_FORBIDDEN,
    ):
        super().__init__(status_code=status_code, detail=detail)


def get_access_service() -> AccessService:
    return access_service


def get_authorization_service() -> AuthorizationService:
    return authorization_service


async def get_current_principal(
    request: Request,
    service: AccessService = Depends(get_access_service),
) -> Optional[Principal]:
    """Get the current principal if one is identified, otherwise None."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        return None
    return await service.get_principal(str(user_id))


async def require_principal(
    principal: Optional[Principal] = Depends(get_current_principal),
) -> Principal:
    """Get the current principal or reject the request with 401."""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_module_capability(
    module: Union[Module, str],
    action: Union[Capability, str] = Capability.VIEW,
) -> Callable:
    """
    Require the principal's role to grant ``action`` on ``module``.

    Usage:
        @router.delete("/team/{member_id}")
        async def remove_member(
            principal: Principal = Depends(require_module_capability(Module.TEAM, Capability.DELETE)),
        ):
            ...
    """
    async def capability_checker(
        principal: Principal = Depends(require_principal),
        authz: AuthorizationService = Depends(get_authorization_service),
    ) -> Principal:
        result = authz.authorize(principal, module, action)
        if result.denied:
            raise AccessDeniedError(detail=result.reason or "Insufficient permissions")
        return principal

    return capability_checker


def require_project_access(
    action: Union[Capability, str] = Capability.VIEW,
    param: str = "project_id",
) -> Callable:
    """
    Require access to the project named by path parameter ``param``.

    ``edit`` checks project editing; any other action checks viewing.

    Usage:
        @router.put("/projects/{project_id}")
        async def update_project(
            project_id: str,
            principal: Principal = Depends(require_project_access(Capability.EDIT)),
        ):
            ...
    """
    editing = str(getattr(action, "value", action)) == Capability.EDIT.value

    async def project_checker(
        request: Request,
        principal: Principal = Depends(require_principal),
        authz: AuthorizationService = Depends(get_authorization_service),
    ) -> Principal:
        project_id = request.path_params.get(param)
        if not project_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Missing path parameter '{param}'",
            )

        check = authz.can_edit_project if editing else authz.can_view_project
        if not check(principal, project_id):
            logger.warning(
                "project_access_denied",
                user_id=principal.id,
                project_id=project_id,
                action="edit" if editing else "view",
            )
            raise AccessDeniedError(detail="You do not have access to this project")
        return principal

    return project_checker


def require_task_access(
    action: Union[Capability, str] = Capability.VIEW,
    param: str = "task_id",
) -> Callable:
    """
    Require access to the task named by path parameter ``param``.

    ``edit`` checks task editing; any other action checks viewing.
    """
    editing = str(getattr(action, "value", action)) == Capability.EDIT.value

    async def task_checker(
        request: Request,
        principal: Principal = Depends(require_principal),
        authz: AuthorizationService = Depends(get_authorization_service),
    ) -> Principal:
        task_id = request.path_params.get(param)
        if not task_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Missing path parameter '{param}'",
            )

        check = authz.can_edit_task if editing else authz.can_view_task
        if not check(principal, task_id):
            logger.warning(
                "task_access_denied",
                user_id=principal.id,
                task_id=task_id,
                action="edit" if editing else "view",
            )
            raise AccessDeniedError(detail="You do not have access to this task")
        return principal

    return task_checker


def require_admin() -> Callable:
    """Shortcut for requiring the admin role."""
    async def admin_checker(
        principal: Principal = Depends(require_principal),
        authz: AuthorizationService = Depends(get_authorization_service),
    ) -> Principal:
        if authz.resolver.get_mapped_role(principal) is not UserRole.ADMIN:
            logger.warning("admin_required", user_id=principal.id, role=principal.role)
            raise AccessDeniedError(detail="Administrator access required")
        return principal

    return admin_checker


# Export all dependencies
__all__ = [
    "AccessDeniedError",
    "get_access_service",
    "get_authorization_service",
    "get_current_principal",
    "require_principal",
    "require_module_capability",
    "require_project_access",
    "require_task_access",
    "require_admin",
]
