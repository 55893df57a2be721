"""
Task assignment repository.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import TaskAssignment
from app.repositories.base import BaseRepository


class TaskAssignmentRepository(BaseRepository[TaskAssignment]):
    """Task assignment repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(TaskAssignment, db)

    async def get_by_user(self, user_id: str) -> List[TaskAssignment]:
        """Get all assignments made to a user, oldest first."""
        stmt = (
            select(TaskAssignment)
            .where(TaskAssignment.assigned_to == user_id)
            .order_by(TaskAssignment.assigned_at, TaskAssignment.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_task_and_user(self, task_id: str, user_id: str) -> Optional[TaskAssignment]:
        stmt = select(TaskAssignment).where(
            TaskAssignment.task_id == task_id,
            TaskAssignment.assigned_to == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
