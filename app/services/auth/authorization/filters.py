"""
Resource filtering for list views.

Narrows collections of projects, tasks, calendar events and time entries to
the items a principal may see. Filters are stable (input order is kept),
pure and idempotent.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import structlog

from app.domain.schemas.access import Principal
from app.domain.schemas.project import CalendarEvent, Project, Task, TimeEntry

from .permissions import Capability, Module
from .policies import PermissionResolver, permission_resolver
from .rbac import UserRole

logger = structlog.get_logger(__name__)


class ResourceFilter:
    """Scopes collections to a principal before they are listed."""

    def __init__(self, resolver: Optional[PermissionResolver] = None):
        self.resolver = resolver or permission_resolver

    def filter_projects(self, principal: Optional[Principal], projects: Sequence[Project]) -> List[Project]:
        """
        Keep the projects the principal may view.

        Admins get the input unchanged. Project managers and team leads get
        the projects they are members of; developers get the projects their
        own tasks belong to. Anyone else gets nothing.
        """
        role, permissions = self.resolver._resolve(principal)
        if role is UserRole.ADMIN:
            return list(projects)
        if role is None or not permissions.allows(Module.PROJECTS, Capability.VIEW_ASSIGNED):
            return []

        if role in (UserRole.PROJECT_MANAGER, UserRole.TEAM_LEAD):
            visible = principal.membership_project_ids
        else:
            visible = principal.assigned_project_ids

        result = [project for project in projects if project.id in visible]
        logger.debug(
            "projects_filtered",
            user_id=principal.id,
            role=role.value,
            total=len(projects),
            visible=len(result),
        )
        return result

    def filter_tasks(self, principal: Optional[Principal], tasks: Sequence[Task]) -> List[Task]:
        """
        Keep the tasks the principal may view.

        Project managers see every task in their projects, team leads every
        task in their team's projects, developers only their own tasks.
        """
        role, permissions = self.resolver._resolve(principal)
        if role is UserRole.ADMIN:
            return list(tasks)
        if role is None:
            return []

        if role is UserRole.PROJECT_MANAGER and permissions.allows(Module.TASKS, Capability.VIEW_ASSIGNED):
            visible = principal.membership_project_ids
            result = [task for task in tasks if task.project_id in visible]
        elif role is UserRole.TEAM_LEAD and permissions.allows(Module.TASKS, Capability.VIEW_TEAM):
            visible = principal.membership_project_ids
            result = [task for task in tasks if task.project_id in visible]
        elif role is UserRole.DEVELOPER and permissions.allows(Module.TASKS, Capability.VIEW_ASSIGNED):
            result = [task for task in tasks if task.assignee_id == principal.id]
        else:
            result = []

        logger.debug(
            "tasks_filtered",
            user_id=principal.id,
            role=role.value,
            total=len(tasks),
            visible=len(result),
        )
        return result

    def filter_editable_projects(self, principal: Optional[Principal], projects: Sequence[Project]) -> List[Project]:
        """Keep the projects the principal may edit."""
        return [project for project in projects if self.resolver.can_edit_project(principal, project.id)]

    def filter_editable_tasks(self, principal: Optional[Principal], tasks: Sequence[Task]) -> List[Task]:
        """
        Keep the tasks the principal may edit.

        Uses the same ownership rules as ``filter_tasks`` on the ``tasks.edit``
        capability, judged against each task in the collection rather than the
        principal's known task set.
        """
        role, permissions = self.resolver._resolve(principal)
        if role is UserRole.ADMIN:
            return list(tasks)
        if role is None or not permissions.allows(Module.TASKS, Capability.EDIT):
            return []
        if role in (UserRole.PROJECT_MANAGER, UserRole.TEAM_LEAD):
            visible = principal.membership_project_ids
            return [task for task in tasks if task.project_id in visible]
        return [task for task in tasks if task.assignee_id == principal.id]

    def filter_calendar_events(
        self,
        principal: Optional[Principal],
        events: Sequence[CalendarEvent],
    ) -> List[CalendarEvent]:
        """Keep the calendar events the principal may see."""
        return [event for event in events if self.resolver.can_view_calendar_event(principal, event)]

    def filter_time_entries(self, principal: Optional[Principal], entries: Sequence[TimeEntry]) -> List[TimeEntry]:
        """Keep the time entries the principal may see."""
        return [entry for entry in entries if self.resolver.can_view_time_entry(principal, entry)]

    def filter_editable_time_entries(
        self,
        principal: Optional[Principal],
        entries: Sequence[TimeEntry],
    ) -> List[TimeEntry]:
        """Keep the time entries the principal may edit."""
        return [entry for entry in entries if self.resolver.can_edit_time_entry(principal, entry)]


# Global resource filter instance
resource_filter = ResourceFilter()
