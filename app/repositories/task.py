"""
Task repository.
"""
from typing import Iterable, List

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import Task
from app.repositories.base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Task repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(Task, db)

    async def get_known_tasks(self, user_id: str, task_ids: Iterable[str]) -> List[Task]:
        """
        Get every task in ``task_ids`` plus every task assigned to the user.

        Each task appears once however it was reached.

        Args:
            user_id: Assignee to include tasks for
            task_ids: Task ids reached through assignment records

        Returns:
            Distinct tasks ordered by id
        """
        ids = list(dict.fromkeys(task_ids))
        condition = Task.assignee_id == user_id
        if ids:
            condition = or_(condition, Task.id.in_(ids))
        stmt = select(Task).where(condition).order_by(Task.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())
