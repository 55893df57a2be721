"""
Project repository.
"""
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import Project
from app.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Project repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(Project, db)

    async def get_by_ids(self, project_ids: Iterable[str]) -> List[Project]:
        """Get the projects whose id is in ``project_ids``, ordered by name."""
        ids = list(dict.fromkeys(project_ids))
        if not ids:
            return []
        stmt = select(Project).where(Project.id.in_(ids)).order_by(Project.name, Project.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
