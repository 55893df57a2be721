"""
Access-control schemas: principals and the records that scope them.

Records arriving from the data store may carry either the canonical
snake_case field names or the legacy camelCase ones. Both are accepted on
input; only the canonical names exist past this boundary.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .project import Project, Task


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MembershipRole(str, Enum):
    """Role a principal holds inside a single project."""
    MANAGER = "manager"
    MEMBER = "member"


class AssignmentStatus(str, Enum):
    """Lifecycle of a task assignment."""
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class AccessRecord(BaseModel):
    """Base for records mirrored from the data store."""
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True,
        extra="ignore",
    )


class ProjectMembership(AccessRecord):
    """Grants a principal access to one project."""
    id: str
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"))
    project_id: str = Field(validation_alias=AliasChoices("project_id", "projectId"))
    role: MembershipRole = MembershipRole.MEMBER
    assigned_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assigned_by", "assignedBy")
    )
    assigned_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("assigned_at", "assignedAt"),
    )


class TaskAssignment(AccessRecord):
    """Gives a principal responsibility for one task."""
    id: str
    task_id: str = Field(validation_alias=AliasChoices("task_id", "taskId"))
    assigned_to: str = Field(validation_alias=AliasChoices("assigned_to", "assignedTo"))
    assigned_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assigned_by", "assignedBy")
    )
    assigned_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("assigned_at", "assignedAt"),
    )
    status: AssignmentStatus = AssignmentStatus.ASSIGNED


class UserGrants(AccessRecord):
    """Explicit per-user grants kept alongside the role."""
    project_ids: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("project_ids", "projectIds")
    )
    task_ids: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("task_ids", "taskIds")
    )
    calendar_access: bool = Field(
        default=False, validation_alias=AliasChoices("calendar_access", "calendarAccess")
    )
    tracking_access: bool = Field(
        default=False, validation_alias=AliasChoices("tracking_access", "trackingAccess")
    )


class Principal(AccessRecord):
    """
    Snapshot of an authenticated user and everything loaded to scope them.

    ``role`` is the raw role string as stored; it may be a legacy name and is
    translated by the role registry before any lookup. ``tasks`` is the known
    task set: the tasks reachable through assignments plus the tasks whose
    assignee is this principal.
    """
    id: str
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    memberships: List[ProjectMembership] = Field(default_factory=list)
    assignments: List[TaskAssignment] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    grants: UserGrants = Field(default_factory=UserGrants)
    loaded_at: datetime = Field(default_factory=_utcnow)

    @property
    def membership_project_ids(self) -> Set[str]:
        """Projects this principal is a member of, in any membership role."""
        return {membership.project_id for membership in self.memberships}

    @property
    def managed_project_ids(self) -> Set[str]:
        """Projects where this principal holds the manager membership role."""
        return {
            membership.project_id
            for membership in self.memberships
            if membership.role is MembershipRole.MANAGER
        }

    @property
    def assigned_tasks(self) -> List[Task]:
        """Known tasks whose assignee is this principal."""
        return [task for task in self.tasks if task.assignee_id == self.id]

    @property
    def assigned_project_ids(self) -> Set[str]:
        """Distinct projects referenced by this principal's own tasks."""
        return {task.project_id for task in self.assigned_tasks}

    def find_task(self, task_id: str) -> Optional[Task]:
        """Look a task up in the known task set."""
        return next((task for task in self.tasks if task.id == task_id), None)
