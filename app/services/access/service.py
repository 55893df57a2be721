"""
Access data service.

Reads and writes project memberships, task assignments and explicit grants,
and assembles the principal snapshots the authorization core evaluates.
Every successful write drops the affected principal from the cache and, if
the principal was cached, loads a fresh snapshot in its place.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Union

import structlog
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    AccessStoreError,
    AuthenticationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.logging import log_error_details
from app.domain.schemas.access import (
    AssignmentStatus,
    MembershipRole,
    Principal,
    ProjectMembership,
    TaskAssignment,
    UserGrants,
)
from app.domain.schemas.project import Project, Task
from app.repositories.unit_of_work import ReadOnlyUnitOfWork, SessionFactory, UnitOfWork

from .cache import PrincipalCache

logger = structlog.get_logger(__name__)


def _parse_membership_role(role: Union[MembershipRole, str]) -> MembershipRole:
    try:
        return MembershipRole(role)
    except ValueError:
        raise ValidationError(f"Invalid membership role '{role}'", field="role")


def _parse_assignment_status(status: Union[AssignmentStatus, str]) -> AssignmentStatus:
    try:
        return AssignmentStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid assignment status '{status}'", field="status")


class AccessService:
    """Grant/revoke operations and principal loading over the data store."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        cache: Optional[PrincipalCache] = None,
    ):
        self._session_factory = session_factory
        self.cache = cache if cache is not None else PrincipalCache()

    @asynccontextmanager
    async def _store(
        self,
        operation: str,
        user_id: Optional[str] = None,
        read_only: bool = False,
        **context,
    ) -> AsyncIterator[UnitOfWork]:
        # Store failures surface as AccessStoreError; the unit of work has rolled back by then
        uow_class = ReadOnlyUnitOfWork if read_only else UnitOfWork
        try:
            async with uow_class(self._session_factory) as uow:
                yield uow
        except SQLAlchemyError as e:
            logger.error(
                "access_store_error",
                **log_error_details(e, user_id=user_id, operation=operation, **context),
            )
            raise AccessStoreError(operation, str(e)) from e

    # Reads

    async def fetch_project_memberships(self, user_id: str) -> List[ProjectMembership]:
        """
        Get the project memberships held by a user.

        Args:
            user_id: User ID

        Returns:
            Memberships, oldest first
        """
        async with self._store("fetch_project_memberships", user_id=user_id, read_only=True) as uow:
            rows = await uow.project_members.get_by_user(user_id)
            return [ProjectMembership.model_validate(row) for row in rows]

    async def fetch_task_assignments(self, user_id: str) -> List[TaskAssignment]:
        """
        Get the task assignments made to a user.

        Args:
            user_id: User ID

        Returns:
            Assignments, oldest first
        """
        async with self._store("fetch_task_assignments", user_id=user_id, read_only=True) as uow:
            rows = await uow.task_assignments.get_by_user(user_id)
            return [TaskAssignment.model_validate(row) for row in rows]

    async def load_principal(self, user_id: str) -> Optional[Principal]:
        """
        Build a fresh principal snapshot from the data store.

        The snapshot holds the user's memberships, assignments and explicit
        grants, the projects the memberships point at, and the known task set:
        tasks reached through assignments plus tasks whose assignee is the
        user, each once.

        Args:
            user_id: User ID

        Returns:
            Principal, or None if the user does not exist
        """
        async with self._store("load_principal", user_id=user_id, read_only=True) as uow:
            user = await uow.users.get(user_id)
            if user is None:
                return None

            memberships = await uow.project_members.get_by_user(user_id)
            assignments = await uow.task_assignments.get_by_user(user_id)
            grants = await uow.user_permissions.get_by_user(user_id)
            projects = await uow.projects.get_by_ids(m.project_id for m in memberships)
            tasks = await uow.tasks.get_known_tasks(user_id, (a.task_id for a in assignments))

            principal = Principal(
                id=user.id,
                role=user.role,
                email=user.email,
                full_name=user.full_name,
                memberships=[ProjectMembership.model_validate(row) for row in memberships],
                assignments=[TaskAssignment.model_validate(row) for row in assignments],
                projects=[Project.model_validate(row) for row in projects],
                tasks=[Task.model_validate(row) for row in tasks],
                grants=UserGrants.model_validate(grants) if grants is not None else UserGrants(),
            )

        logger.info(
            "principal_loaded",
            user_id=user_id,
            role=principal.role,
            memberships=len(principal.memberships),
            assignments=len(principal.assignments),
            tasks=len(principal.tasks),
        )
        return principal

    async def get_principal(self, user_id: str) -> Optional[Principal]:
        """Cached principal for ``user_id``, loading it on a miss."""
        principal = self.cache.get(user_id)
        if principal is not None:
            return principal

        principal = await self.load_principal(user_id)
        if principal is not None:
            self.cache.put(principal)
        return principal

    async def refresh_principal(self, user_id: str) -> Optional[Principal]:
        """Replace the cached snapshot for ``user_id`` with a fresh load."""
        self.cache.invalidate(user_id)
        principal = await self.load_principal(user_id)
        if principal is not None:
            self.cache.put(principal)
        return principal

    async def _after_write(self, user_id: str) -> None:
        if self.cache.invalidate(user_id):
            await self.refresh_principal(user_id)

    # Writes

    async def add_project_member(
        self,
        user_id: str,
        project_id: str,
        role: Union[MembershipRole, str] = MembershipRole.MEMBER,
        assigned_by: Optional[str] = None,
    ) -> bool:
        """
        Add a user to a project.

        Args:
            user_id: User being granted access
            project_id: Project to grant
            role: Membership role, ``manager`` or ``member``
            assigned_by: Principal performing the grant

        Returns:
            True once the membership is stored

        Raises:
            AuthenticationError: No granting principal was given
            ValidationError: Invalid role, or the user is already a member
            NotFoundError: The user or project does not exist
            AccessStoreError: The data store rejected the write
        """
        if not assigned_by:
            raise AuthenticationError("A signed-in user is required to add project members")
        membership_role = _parse_membership_role(role)

        async with self._store("add_project_member", user_id=user_id, project_id=project_id) as uow:
            if await uow.users.get(user_id) is None:
                raise NotFoundError("User", user_id)
            if await uow.projects.get(project_id) is None:
                raise NotFoundError("Project", project_id)
            if await uow.project_members.get_by_user_and_project(user_id, project_id) is not None:
                raise ValidationError("User is already a member of this project", field="project_id")

            membership = await uow.project_members.create({
                "user_id": user_id,
                "project_id": project_id,
                "role": membership_role.value,
                "assigned_by": assigned_by,
            })

        logger.info(
            "project_member_added",
            membership_id=membership.id,
            user_id=user_id,
            project_id=project_id,
            role=membership_role.value,
            assigned_by=assigned_by,
        )
        await self._after_write(user_id)
        return True

    async def remove_project_member(self, membership_id: str) -> bool:
        """
        Remove a project membership.

        Raises:
            NotFoundError: The membership does not exist
            AccessStoreError: The data store rejected the write
        """
        async with self._store("remove_project_member", membership_id=membership_id) as uow:
            membership = await uow.project_members.get(membership_id)
            if membership is None:
                raise NotFoundError("ProjectMember", membership_id)
            user_id = membership.user_id
            project_id = membership.project_id
            await uow.project_members.delete(membership_id)

        logger.info(
            "project_member_removed",
            membership_id=membership_id,
            user_id=user_id,
            project_id=project_id,
        )
        await self._after_write(user_id)
        return True

    async def assign_task(
        self,
        task_id: str,
        user_id: str,
        assigned_by: Optional[str] = None,
    ) -> bool:
        """
        Assign a task to a user with status ``assigned``.

        Raises:
            AuthenticationError: No assigning principal was given
            ValidationError: The task is already assigned to the user
            NotFoundError: The task or user does not exist
            AccessStoreError: The data store rejected the write
        """
        if not assigned_by:
            raise AuthenticationError("A signed-in user is required to assign tasks")

        async with self._store("assign_task", user_id=user_id, task_id=task_id) as uow:
            if await uow.tasks.get(task_id) is None:
                raise NotFoundError("Task", task_id)
            if await uow.users.get(user_id) is None:
                raise NotFoundError("User", user_id)
            if await uow.task_assignments.get_by_task_and_user(task_id, user_id) is not None:
                raise ValidationError("Task is already assigned to this user", field="task_id")

            assignment = await uow.task_assignments.create({
                "task_id": task_id,
                "assigned_to": user_id,
                "assigned_by": assigned_by,
                "status": AssignmentStatus.ASSIGNED.value,
            })

        logger.info(
            "task_assigned",
            assignment_id=assignment.id,
            task_id=task_id,
            user_id=user_id,
            assigned_by=assigned_by,
        )
        await self._after_write(user_id)
        return True

    async def unassign_task(self, assignment_id: str) -> bool:
        """
        Remove a task assignment.

        Raises:
            NotFoundError: The assignment does not exist
            AccessStoreError: The data store rejected the write
        """
        async with self._store("unassign_task", assignment_id=assignment_id) as uow:
            assignment = await uow.task_assignments.get(assignment_id)
            if assignment is None:
                raise NotFoundError("TaskAssignment", assignment_id)
            user_id = assignment.assigned_to
            task_id = assignment.task_id
            await uow.task_assignments.delete(assignment_id)

        logger.info("task_unassigned", assignment_id=assignment_id, task_id=task_id, user_id=user_id)
        await self._after_write(user_id)
        return True

    async def update_task_assignment_status(
        self,
        assignment_id: str,
        status: Union[AssignmentStatus, str],
    ) -> bool:
        """
        Accept or decline an assignment.

        Only ``assigned`` assignments move, and only to ``accepted`` or
        ``declined``; the move happens once.

        Raises:
            ValidationError: Unknown status
            InvalidStateTransitionError: The assignment cannot move to ``status``
            NotFoundError: The assignment does not exist
            AccessStoreError: The data store rejected the write
        """
        requested = _parse_assignment_status(status)

        async with self._store("update_task_assignment_status", assignment_id=assignment_id) as uow:
            assignment = await uow.task_assignments.get(assignment_id)
            if assignment is None:
                raise NotFoundError("TaskAssignment", assignment_id)

            current = AssignmentStatus(assignment.status)
            if current is not AssignmentStatus.ASSIGNED or requested is AssignmentStatus.ASSIGNED:
                raise InvalidStateTransitionError(current.value, requested.value)

            user_id = assignment.assigned_to
            await uow.task_assignments.update(assignment_id, {"status": requested.value})

        logger.info(
            "task_assignment_status_updated",
            assignment_id=assignment_id,
            user_id=user_id,
            previous=current.value,
            status=requested.value,
        )
        await self._after_write(user_id)
        return True

    async def update_user_grants(self, user_id: str, grants: UserGrants) -> bool:
        """
        Replace the explicit grants stored for a user.

        Raises:
            NotFoundError: The user does not exist
            AccessStoreError: The data store rejected the write
        """
        data = {
            "project_ids": list(dict.fromkeys(grants.project_ids)),
            "task_ids": list(dict.fromkeys(grants.task_ids)),
            "calendar_access": grants.calendar_access,
            "tracking_access": grants.tracking_access,
        }

        async with self._store("update_user_grants", user_id=user_id) as uow:
            if await uow.users.get(user_id) is None:
                raise NotFoundError("User", user_id)

            existing = await uow.user_permissions.get_by_user(user_id)
            if existing is None:
                await uow.user_permissions.create({"user_id": user_id, **data})
            else:
                await uow.user_permissions.update(existing.id, data)

        logger.info(
            "user_grants_updated",
            user_id=user_id,
            projects=len(data["project_ids"]),
            tasks=len(data["task_ids"]),
            calendar_access=data["calendar_access"],
            tracking_access=data["tracking_access"],
        )
        await self._after_write(user_id)
        return True


# Global access service instance
access_service = AccessService()
