"""
User permission repository.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import UserPermission
from app.repositories.base import BaseRepository


class UserPermissionRepository(BaseRepository[UserPermission]):
    """Explicit grants repository; at most one row per user."""

    def __init__(self, db: AsyncSession):
        super().__init__(UserPermission, db)

    async def get_by_user(self, user_id: str) -> Optional[UserPermission]:
        stmt = select(UserPermission).where(UserPermission.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
