"""
Authorization and RBAC system for ProjectHub.

This module provides the role registry, the permission resolver that answers
per-module and per-resource questions, the resource filter that scopes list
views, and FastAPI dependencies that enforce decisions over HTTP.
"""

from .authorization import AuthorizationResult, AuthorizationService, authorization_service
from .decorators import (
    AccessDeniedError,
    get_current_principal,
    require_admin,
    require_module_capability,
    require_principal,
    require_project_access,
    require_task_access,
)
from .filters import ResourceFilter, resource_filter
from .permissions import MODULE_CAPABILITIES, Capability, Module, RolePermissions
from .policies import PermissionResolver, permission_resolver
from .rbac import LEGACY_ROLE_MAP, LegacyRole, Role, RoleRegistry, UserRole, role_registry

__all__ = [
    # Core services
    "AuthorizationService",
    "PermissionResolver",
    "ResourceFilter",
    "RoleRegistry",
    "authorization_service",
    "permission_resolver",
    "resource_filter",
    "role_registry",

    # Models
    "AuthorizationResult",
    "Capability",
    "LegacyRole",
    "LEGACY_ROLE_MAP",
    "MODULE_CAPABILITIES",
    "Module",
    "Role",
    "RolePermissions",
    "UserRole",

    # Dependencies
    "AccessDeniedError",
    "get_current_principal",
    "require_admin",
    "require_module_capability",
    "require_principal",
    "require_project_access",
    "require_task_access",
]
