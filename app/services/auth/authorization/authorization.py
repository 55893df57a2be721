"""
Main authorization service for ProjectHub.

Coordinates the role registry, the permission resolver and the resource
filter behind a single interface, and records every module-level decision.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

import structlog
from pydantic import BaseModel

from app.core.exceptions import AuthorizationError
from app.domain.schemas.access import Principal
from app.domain.schemas.project import CalendarEvent, Project, Task, TimeEntry

from .filters import ResourceFilter
from .permissions import Capability, Module, RolePermissions, is_defined_pair, parse_capability, parse_module
from .policies import PermissionResolver
from .rbac import RoleRegistry, UserRole, role_registry

logger = structlog.get_logger(__name__)


class AuthorizationResult(BaseModel):
    """Result of authorization check."""
    allowed: bool
    reason: Optional[str] = None
    role: Optional[UserRole] = None

    @property
    def denied(self) -> bool:
        """Check if authorization was denied."""
        return not self.allowed


class AuthorizationService:
    """
    Main authorization service coordinating all authorization components.

    This service provides a unified interface for:
    - Module capability decisions with a recorded reason
    - Per-resource view and edit checks
    - Narrowing resource collections for list views
    """

    def __init__(
        self,
        registry: Optional[RoleRegistry] = None,
        resolver: Optional[PermissionResolver] = None,
        resource_filter: Optional[ResourceFilter] = None,
    ):
        self.registry = registry or role_registry
        self.resolver = resolver or PermissionResolver(self.registry)
        self.filter = resource_filter or ResourceFilter(self.resolver)

    def authorize(
        self,
        principal: Optional[Principal],
        module: Union[Module, str],
        action: Union[Capability, str],
    ) -> AuthorizationResult:
        """
        Decide whether the principal may perform ``action`` on ``module``.

        Args:
            principal: Current principal, or None when nobody is signed in
            module: Module name
            action: Capability name

        Returns:
            AuthorizationResult with decision and reason
        """
        result = AuthorizationResult(allowed=False)
        parsed_module = parse_module(module)
        parsed_action = parse_capability(action)

        if principal is None:
            result.reason = "No authenticated principal"
        elif parsed_module is None or parsed_action is None or not is_defined_pair(parsed_module, parsed_action):
            result.reason = f"Capability {action} is not defined for module {module}"
        else:
            result.role = self.resolver.get_mapped_role(principal)
            if result.role is None:
                result.reason = f"Unrecognized role '{principal.role}'"
            elif self.resolver.has_module_capability(principal, parsed_module, parsed_action):
                result.allowed = True
                result.reason = f"Role {result.role.value} grants {parsed_module.value}.{parsed_action.value}"
            else:
                result.reason = f"Role {result.role.value} does not grant {parsed_module.value}.{parsed_action.value}"

        logger.info(
            "authorization_decision",
            user_id=principal.id if principal else None,
            module=str(getattr(module, "value", module)),
            action=str(getattr(action, "value", action)),
            role=result.role.value if result.role else None,
            allowed=result.allowed,
            reason=result.reason,
        )
        return result

    def require(
        self,
        principal: Optional[Principal],
        module: Union[Module, str],
        action: Union[Capability, str],
    ) -> AuthorizationResult:
        """Like ``authorize`` but raises AuthorizationError on denial."""
        result = self.authorize(principal, module, action)
        if result.denied:
            raise AuthorizationError(result.reason or "Insufficient permissions")
        return result

    def get_role_permissions(self, principal: Optional[Principal]) -> Optional[RolePermissions]:
        return self.resolver.get_role_permissions(principal)

    def get_permission_matrix(self, principal: Optional[Principal]) -> Dict[str, Dict[str, bool]]:
        """Full module/capability matrix for the principal; all False when unknown."""
        permissions = self.get_role_permissions(principal)
        if permissions is None:
            return RolePermissions(role="", modules={}).to_matrix()
        return permissions.to_matrix()

    # Per-resource checks

    def can_access_module(self, principal: Optional[Principal], module: Union[Module, str]) -> bool:
        return self.resolver.can_access_module(principal, module)

    def can_view_project(self, principal: Optional[Principal], project_id: str) -> bool:
        return self.resolver.can_view_project(principal, project_id)

    def can_edit_project(self, principal: Optional[Principal], project_id: str) -> bool:
        return self.resolver.can_edit_project(principal, project_id)

    def can_view_task(self, principal: Optional[Principal], task_id: str) -> bool:
        return self.resolver.can_view_task(principal, task_id)

    def can_edit_task(self, principal: Optional[Principal], task_id: str) -> bool:
        return self.resolver.can_edit_task(principal, task_id)

    def can_view_calendar_event(self, principal: Optional[Principal], event: CalendarEvent) -> bool:
        return self.resolver.can_view_calendar_event(principal, event)

    def can_view_time_entry(self, principal: Optional[Principal], entry: TimeEntry) -> bool:
        return self.resolver.can_view_time_entry(principal, entry)

    def can_edit_time_entry(self, principal: Optional[Principal], entry: TimeEntry) -> bool:
        return self.resolver.can_edit_time_entry(principal, entry)

    # Collection filters

    def filter_projects(self, principal: Optional[Principal], projects: Sequence[Project]) -> List[Project]:
        return self.filter.filter_projects(principal, projects)

    def filter_tasks(self, principal: Optional[Principal], tasks: Sequence[Task]) -> List[Task]:
        return self.filter.filter_tasks(principal, tasks)

    def filter_editable_projects(self, principal: Optional[Principal], projects: Sequence[Project]) -> List[Project]:
        return self.filter.filter_editable_projects(principal, projects)

    def filter_editable_tasks(self, principal: Optional[Principal], tasks: Sequence[Task]) -> List[Task]:
        return self.filter.filter_editable_tasks(principal, tasks)

    def filter_calendar_events(
        self,
        principal: Optional[Principal],
        events: Sequence[CalendarEvent],
    ) -> List[CalendarEvent]:
        return self.filter.filter_calendar_events(principal, events)

    def filter_time_entries(self, principal: Optional[Principal], entries: Sequence[TimeEntry]) -> List[TimeEntry]:
        return self.filter.filter_time_entries(principal, entries)

    def filter_editable_time_entries(
        self,
        principal: Optional[Principal],
        entries: Sequence[TimeEntry],
    ) -> List[TimeEntry]:
        return self.filter.filter_editable_time_entries(principal, entries)


# Global authorization service instance
authorization_service = AuthorizationService()
