"""
Permission resolution for ProjectHub.

Answers yes/no questions about a principal: whether their role grants a
module capability, and whether they may view or edit a specific project,
task, calendar event or time entry. Every answer is computed from the
principal snapshot alone; nothing here performs I/O, and every question
that cannot be answered affirmatively resolves to False.
"""

from __future__ import annotations

from typing import Optional, Union

import structlog

from app.core.config import settings
from app.domain.schemas.access import Principal
from app.domain.schemas.project import CalendarEvent, TimeEntry

from .permissions import Capability, Module, RolePermissions
from .rbac import RoleRegistry, UserRole, role_registry

logger = structlog.get_logger(__name__)


class PermissionResolver:
    """Evaluates module capabilities and per-resource access for a principal."""

    def __init__(self, registry: Optional[RoleRegistry] = None):
        self.registry = registry or role_registry

    def _log(self, check: str, principal: Optional[Principal], target: str, allowed: bool) -> bool:
        if settings.LOG_ACCESS_DECISIONS:
            logger.debug(
                "access_checked",
                check=check,
                user_id=principal.id if principal else None,
                target=target,
                allowed=allowed,
            )
        return allowed

    def get_mapped_role(self, principal: Optional[Principal]) -> Optional[UserRole]:
        """Canonical role of the principal, or None if absent or unrecognized."""
        if principal is None:
            return None
        return self.registry.resolve_role(principal.role)

    def get_role_permissions(self, principal: Optional[Principal]) -> Optional[RolePermissions]:
        """Permission matrix for the principal's role, or None."""
        if principal is None:
            return None
        return self.registry.get_permissions(principal.role)

    def _resolve(self, principal: Optional[Principal]) -> tuple[Optional[UserRole], Optional[RolePermissions]]:
        role = self.get_mapped_role(principal)
        permissions = self.registry.get_permissions(role) if role is not None else None
        # A role without a matrix is treated like an unknown role
        if permissions is None:
            return None, None
        return role, permissions

    # Module capabilities

    def has_module_capability(
        self,
        principal: Optional[Principal],
        module: Union[Module, str],
        action: Union[Capability, str],
    ) -> bool:
        """Check whether the principal's role grants ``action`` on ``module``."""
        _, permissions = self._resolve(principal)
        allowed = permissions is not None and permissions.allows(module, action)
        return self._log("module_capability", principal, f"{module}:{action}", allowed)

    def can_access_module(self, principal: Optional[Principal], module: Union[Module, str]) -> bool:
        """A module is accessible when its ``view`` capability is granted."""
        return self.has_module_capability(principal, module, Capability.VIEW)

    # Projects

    def can_view_project(self, principal: Optional[Principal], project_id: str) -> bool:
        """
        Check whether the principal may view a project.

        Admins see every project. Project managers and team leads see the
        projects they are members of. Developers see the projects of the
        tasks assigned to them.
        """
        role, permissions = self._resolve(principal)
        allowed = False

        if role is UserRole.ADMIN:
            allowed = True
        elif permissions is not None and permissions.allows(Module.PROJECTS, Capability.VIEW_ASSIGNED):
            if role in (UserRole.PROJECT_MANAGER, UserRole.TEAM_LEAD):
                allowed = project_id in principal.membership_project_ids
            elif role is UserRole.DEVELOPER:
                allowed = project_id in principal.assigned_project_ids

        return self._log("view_project", principal, project_id, allowed)

    def can_edit_project(self, principal: Optional[Principal], project_id: str) -> bool:
        """
        Check whether the principal may edit a project.

        Only admins and project managers (on their own projects) edit project
        records. Team leads never edit projects, whatever their memberships.
        """
        role, permissions = self._resolve(principal)
        allowed = False

        if role is UserRole.ADMIN:
            allowed = True
        elif role is UserRole.PROJECT_MANAGER and permissions.allows(Module.PROJECTS, Capability.EDIT):
            allowed = project_id in principal.membership_project_ids

        return self._log("edit_project", principal, project_id, allowed)

    def is_project_manager(self, principal: Optional[Principal], project_id: str) -> bool:
        """True if the principal holds the manager membership role on the project."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        return project_id in principal.managed_project_ids

    # Tasks

    def _task_access(
        self,
        principal: Optional[Principal],
        task_id: str,
        capability_for: dict[UserRole, Capability],
    ) -> bool:
        role, permissions = self._resolve(principal)
        if role is None:
            return False
        if role is UserRole.ADMIN:
            return True

        task = principal.find_task(task_id)
        if task is None:
            return False

        capability = capability_for.get(role)
        if capability is None or not permissions.allows(Module.TASKS, capability):
            return False

        if role in (UserRole.PROJECT_MANAGER, UserRole.TEAM_LEAD):
            return task.project_id in principal.membership_project_ids
        return task.assignee_id == principal.id

    def can_view_task(self, principal: Optional[Principal], task_id: str) -> bool:
        """
        Check whether the principal may view a task from their known task set.

        Project managers and team leads see tasks in their projects; developers
        see tasks assigned to them. Unknown tasks are denied.
        """
        allowed = self._task_access(principal, task_id, {
            UserRole.PROJECT_MANAGER: Capability.VIEW_ASSIGNED,
            UserRole.TEAM_LEAD: Capability.VIEW_TEAM,
            UserRole.DEVELOPER: Capability.VIEW_ASSIGNED,
        })
        return self._log("view_task", principal, task_id, allowed)

    def can_edit_task(self, principal: Optional[Principal], task_id: str) -> bool:
        """Same ownership test as viewing, gated on the ``tasks.edit`` capability."""
        allowed = self._task_access(principal, task_id, {
            UserRole.PROJECT_MANAGER: Capability.EDIT,
            UserRole.TEAM_LEAD: Capability.EDIT,
            UserRole.DEVELOPER: Capability.EDIT,
        })
        return self._log("edit_task", principal, task_id, allowed)

    # Explicit grants

    def has_project_grant(self, principal: Optional[Principal], project_id: str) -> bool:
        """True for admins or when the project is in the principal's explicit grants."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        return role is UserRole.ADMIN or project_id in principal.grants.project_ids

    def has_task_grant(self, principal: Optional[Principal], task_id: str) -> bool:
        """True for admins or when the task is in the principal's explicit grants."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        return role is UserRole.ADMIN or task_id in principal.grants.task_ids

    def has_calendar_access(self, principal: Optional[Principal]) -> bool:
        """True for admins or when calendar access was granted explicitly."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        return role is UserRole.ADMIN or principal.grants.calendar_access

    def has_tracking_access(self, principal: Optional[Principal]) -> bool:
        """True for admins or when time-tracking access was granted explicitly."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        return role is UserRole.ADMIN or principal.grants.tracking_access

    # Calendar and time tracking

    def can_view_calendar_event(self, principal: Optional[Principal], event: CalendarEvent) -> bool:
        """
        Check whether the principal may see a calendar event.

        Requires the ``calendar.view`` capability, then any of: the linked task
        is viewable, the linked project is viewable, or the event is the
        principal's own.
        """
        role, _ = self._resolve(principal)
        if role is None:
            return False
        if role is UserRole.ADMIN:
            return True
        if not self.has_module_capability(principal, Module.CALENDAR, Capability.VIEW):
            return False

        if event.task_id and self.can_view_task(principal, event.task_id):
            return True
        if event.project_id and self.can_view_project(principal, event.project_id):
            return True
        return event.user_id is not None and event.user_id == principal.id

    def can_view_time_entry(self, principal: Optional[Principal], entry: TimeEntry) -> bool:
        """
        Check whether the principal may see a time entry.

        Requires ``timeTracking.view``; then own entries, entries on viewable
        tasks, and entries on projects the principal manages are visible.
        """
        role, _ = self._resolve(principal)
        if role is None:
            return False
        if role is UserRole.ADMIN:
            return True
        if not self.has_module_capability(principal, Module.TIME_TRACKING, Capability.VIEW):
            return False

        if entry.user_id == principal.id:
            return True
        if entry.task_id and self.can_view_task(principal, entry.task_id):
            return True
        return entry.project_id is not None and self.is_project_manager(principal, entry.project_id)

    def can_edit_time_entry(self, principal: Optional[Principal], entry: TimeEntry) -> bool:
        """Admins edit any entry; everyone else edits only their own."""
        role, _ = self._resolve(principal)
        if role is None:
            return False
        if role is UserRole.ADMIN:
            return True
        return (
            entry.user_id == principal.id
            and self.has_module_capability(principal, Module.TIME_TRACKING, Capability.EDIT)
        )


# Global resolver instance
permission_resolver = PermissionResolver()
