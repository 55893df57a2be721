"""
Unit of Work pattern implementation for transactional operations.
"""
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.base import AsyncSessionLocal
from app.repositories.project import ProjectRepository
from app.repositories.project_member import ProjectMemberRepository
from app.repositories.task import TaskRepository
from app.repositories.task_assignment import TaskAssignmentRepository
from app.repositories.user import UserRepository
from app.repositories.user_permission import UserPermissionRepository

SessionFactory = Callable[[], AsyncSession]


class UnitOfWork:
    """
    Unit of Work pattern for managing database transactions.

    Ensures all repository operations within a unit are committed together
    or rolled back on failure.
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory or AsyncSessionLocal
        self._session: AsyncSession | None = None

        # Repository instances
        self._users: UserRepository | None = None
        self._projects: ProjectRepository | None = None
        self._tasks: TaskRepository | None = None
        self._project_members: ProjectMemberRepository | None = None
        self._task_assignments: TaskAssignmentRepository | None = None
        self._user_permissions: UserPermissionRepository | None = None

    async def __aenter__(self):
        """Enter the context manager."""
        self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit the context manager."""
        try:
            if exc_type is not None:
                await self.rollback()
            else:
                await self.commit()
        finally:
            await self._session.close()

    async def commit(self):
        """Commit the transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self):
        """Rollback the transaction."""
        if self._session:
            await self._session.rollback()

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        if not self._session:
            raise RuntimeError("UnitOfWork must be used within a context manager")
        return self._session

    @property
    def users(self) -> UserRepository:
        """Get user repository."""
        if not self._users:
            self._users = UserRepository(self.session)
        return self._users

    @property
    def projects(self) -> ProjectRepository:
        """Get project repository."""
        if not self._projects:
            self._projects = ProjectRepository(self.session)
        return self._projects

    @property
    def tasks(self) -> TaskRepository:
        """Get task repository."""
        if not self._tasks:
            self._tasks = TaskRepository(self.session)
        return self._tasks

    @property
    def project_members(self) -> ProjectMemberRepository:
        """Get project membership repository."""
        if not self._project_members:
            self._project_members = ProjectMemberRepository(self.session)
        return self._project_members

    @property
    def task_assignments(self) -> TaskAssignmentRepository:
        """Get task assignment repository."""
        if not self._task_assignments:
            self._task_assignments = TaskAssignmentRepository(self.session)
        return self._task_assignments

    @property
    def user_permissions(self) -> UserPermissionRepository:
        """Get user permission repository."""
        if not self._user_permissions:
            self._user_permissions = UserPermissionRepository(self.session)
        return self._user_permissions


class ReadOnlyUnitOfWork(UnitOfWork):
    """
    Read-only Unit of Work for query operations.

    Automatically rolls back any changes to prevent accidental writes.
    """

    async def commit(self):
        """Override commit to always rollback."""
        await self.rollback()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Always rollback on exit."""
        try:
            await self.rollback()
        finally:
            await self._session.close()
