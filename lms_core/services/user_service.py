# lms_core/services/user_service.py
from typing import Dict, Iterable, List, Set
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .base_service import BaseService
from ..core.exceptions import ProfessorNotFound
from ..models.shared.user import User, RoleEnum


class UserService(BaseService[User]):
    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_school_professors(self, school_id: UUID, professor_ids: Iterable[UUID]) -> List[User]:
        """Non-deleted professors of the school among ``professor_ids``"""
        professor_ids = set(professor_ids)
        if not professor_ids:
            return []
        stmt = select(self.model).where(
            self.model.id.in_(professor_ids),
            self.model.school_id == school_id,
            self.model.role == RoleEnum.PROFESSOR.value,
            self.model.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def validate_professors(self, school_id: UUID, professor_ids: Iterable[UUID]) -> List[User]:
        """All-or-nothing: every id must be a live professor of the school."""
        professor_ids: Set[UUID] = set(professor_ids)
        professors = await self.get_school_professors(school_id, professor_ids)
        missing = professor_ids - {p.id for p in professors}
        if missing:
            raise ProfessorNotFound(missing)
        return professors

    async def get_professor(self, school_id: UUID, professor_id: UUID) -> User:
        professors = await self.validate_professors(school_id, [professor_id])
        return professors[0]

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> Dict[UUID, User]:
        """Read-only lookup for display names; soft-deleted users still resolve."""
        users = await self.get_many(set(user_ids))
        return {user.id: user for user in users}
