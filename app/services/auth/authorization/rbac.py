"""
Role-Based Access Control (RBAC) registry for ProjectHub.

Holds the built-in roles and their permission matrices, and translates the
legacy role names still stored on user records into canonical roles.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from .permissions import RolePermissions

logger = structlog.get_logger(__name__)


class UserRole(str, Enum):
    """Canonical roles."""
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    TEAM_LEAD = "team_lead"
    DEVELOPER = "developer"


class LegacyRole(str, Enum):
    """Role names found on user records created before the canonical roles."""
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


# Legacy names translate here. No legacy name reaches TEAM_LEAD; that role is
# only held by users whose record stores "team_lead" directly.
LEGACY_ROLE_MAP: Mapping[LegacyRole, UserRole] = MappingProxyType({
    LegacyRole.ADMIN: UserRole.ADMIN,
    LegacyRole.MANAGER: UserRole.PROJECT_MANAGER,
    LegacyRole.MEMBER: UserRole.DEVELOPER,
})


class Role(BaseModel):
    """Role model with its permission matrix and display metadata."""
    model_config = ConfigDict(frozen=True)

    name: UserRole
    display_name: str
    description: Optional[str] = None
    permissions: RolePermissions


def _default_roles() -> List[Role]:
    admin = Role(
        name=UserRole.ADMIN,
        display_name="Administrator",
        description="Full access to every module and every record",
        permissions=RolePermissions(
            role=UserRole.ADMIN.value,
            modules={
                "dashboard": {"view": True, "viewAll": True},
                "clients": {"view": True, "viewAll": True, "create": True, "edit": True, "delete": True},
                "projects": {
                    "view": True, "viewAll": True, "viewAssigned": True,
                    "create": True, "edit": True, "delete": True,
                },
                "tasks": {
                    "view": True, "viewAll": True, "viewAssigned": True, "viewTeam": True,
                    "create": True, "edit": True, "delete": True, "assign": True,
                },
                "calendar": {"view": True, "viewAll": True, "viewAssigned": True, "create": True, "edit": True},
                "timeTracking": {"view": True, "viewAll": True, "viewTeam": True, "create": True, "edit": True},
                "team": {"view": True, "viewAll": True, "create": True, "edit": True, "delete": True},
            },
        ),
    )

    project_manager = Role(
        name=UserRole.PROJECT_MANAGER,
        display_name="Project Manager",
        description="Manages the projects they are a member of",
        permissions=RolePermissions(
            role=UserRole.PROJECT_MANAGER.value,
            modules={
                "dashboard": {"view": True, "viewAll": False},
                "clients": {"view": True, "viewAll": True, "create": True, "edit": True, "delete": False},
                "projects": {
                    "view": True, "viewAll": False, "viewAssigned": True,
                    "create": True, "edit": True, "delete": False,
                },
                "tasks": {
                    "view": True, "viewAll": False, "viewAssigned": True, "viewTeam": True,
                    "create": True, "edit": True, "delete": True, "assign": True,
                },
                "calendar": {"view": True, "viewAll": False, "viewAssigned": True, "create": True, "edit": True},
                "timeTracking": {"view": True, "viewAll": False, "viewTeam": True, "create": True, "edit": True},
                "team": {"view": True, "viewAll": False, "create": False, "edit": True, "delete": False},
            },
        ),
    )

    team_lead = Role(
        name=UserRole.TEAM_LEAD,
        display_name="Team Lead",
        description="Coordinates the tasks of their team's projects",
        permissions=RolePermissions(
            role=UserRole.TEAM_LEAD.value,
            modules={
                "dashboard": {"view": True, "viewAll": False},
                "clients": {"view": True, "viewAll": False, "create": False, "edit": False, "delete": False},
                "projects": {
                    "view": True, "viewAll": False, "viewAssigned": True,
                    "create": False, "edit": False, "delete": False,
                },
                "tasks": {
                    "view": True, "viewAll": False, "viewAssigned": True, "viewTeam": True,
                    "create": True, "edit": True, "delete": False, "assign": True,
                },
                "calendar": {"view": True, "viewAll": False, "viewAssigned": True, "create": False, "edit": True},
                "timeTracking": {"view": True, "viewAll": False, "viewTeam": True, "create": True, "edit": True},
                "team": {"view": True, "viewAll": False, "create": False, "edit": False, "delete": False},
            },
        ),
    )

    developer = Role(
        name=UserRole.DEVELOPER,
        display_name="Developer",
        description="Works on the tasks assigned to them",
        permissions=RolePermissions(
            role=UserRole.DEVELOPER.value,
            modules={
                "dashboard": {"view": True, "viewAll": False},
                "clients": {"view": True, "viewAll": False, "create": False, "edit": False, "delete": False},
                "projects": {
                    "view": True, "viewAll": False, "viewAssigned": True,
                    "create": False, "edit": False, "delete": False,
                },
                "tasks": {
                    "view": True, "viewAll": False, "viewAssigned": True, "viewTeam": False,
                    "create": False, "edit": True, "delete": False, "assign": False,
                },
                "calendar": {"view": True, "viewAll": False, "viewAssigned": True, "create": False, "edit": False},
                "timeTracking": {"view": True, "viewAll": False, "viewTeam": False, "create": True, "edit": True},
                "team": {"view": True, "viewAll": False, "create": False, "edit": False, "delete": False},
            },
        ),
    )

    return [admin, project_manager, team_lead, developer]


class RoleRegistry:
    """Read-only registry of the built-in roles, built once at import."""

    def __init__(self, roles: Optional[List[Role]] = None):
        self._roles: Dict[UserRole, Role] = {}
        for role in roles if roles is not None else _default_roles():
            self._register(role)

    def _register(self, role: Role) -> None:
        if role.name in self._roles:
            raise ValueError(f"Role '{role.name.value}' is already registered")
        self._roles[role.name] = role
        logger.debug("role_registered", name=role.name.value)

    def resolve_role(self, role: Union[UserRole, str, None]) -> Optional[UserRole]:
        """
        Translate a stored role name into a canonical role.

        Legacy names go through LEGACY_ROLE_MAP; canonical names pass through
        unchanged. Anything else resolves to None.
        """
        if role is None:
            return None
        if isinstance(role, UserRole):
            return role
        try:
            return LEGACY_ROLE_MAP[LegacyRole(role)]
        except ValueError:
            pass
        try:
            return UserRole(role)
        except ValueError:
            return None

    def get_role(self, role: Union[UserRole, str, None]) -> Optional[Role]:
        """Get role by canonical or legacy name."""
        canonical = self.resolve_role(role)
        if canonical is None:
            return None
        return self._roles.get(canonical)

    def get_permissions(self, role: Union[UserRole, str, None]) -> Optional[RolePermissions]:
        """
        Get the permission matrix for a role.

        Returns None for an unrecognized role. Callers treat that as every
        capability denied.
        """
        found = self.get_role(role)
        if found is None:
            logger.debug("unknown_role", role=str(role))
            return None
        return found.permissions

    def get_all_roles(self) -> List[Role]:
        """Get all roles."""
        return list(self._roles.values())


# Global role registry instance
role_registry = RoleRegistry()
