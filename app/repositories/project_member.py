"""
Project membership repository.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import ProjectMember
from app.repositories.base import BaseRepository


class ProjectMemberRepository(BaseRepository[ProjectMember]):
    """Project membership repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(ProjectMember, db)

    async def get_by_user(self, user_id: str) -> List[ProjectMember]:
        """Get all memberships held by a user, oldest first."""
        stmt = (
            select(ProjectMember)
            .where(ProjectMember.user_id == user_id)
            .order_by(ProjectMember.assigned_at, ProjectMember.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user_and_project(self, user_id: str, project_id: str) -> Optional[ProjectMember]:
        stmt = select(ProjectMember).where(
            ProjectMember.user_id == user_id,
            ProjectMember.project_id == project_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
