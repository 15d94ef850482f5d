# lms_core/services/tenant_service.py
from typing import Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from .base_service import BaseService
from ..core.exceptions import BadRequestError, DatabaseError, SchoolNotFound, TenantConfigurationError
from ..core.tenant_registry import TenantHandle, TenantRegistry, tenant_registry
from ..models.shared.school import School
from ..models.shared.user import RoleEnum
from ..schemas.assignment_schemas import Actor

logger = logging.getLogger(__name__)


def resolve_school_id(actor: Actor, requested_school_id: Optional[UUID] = None) -> UUID:
    """Super admins must name the school; everyone else is pinned to their own."""
    if actor.role == RoleEnum.SUPER_ADMIN:
        if requested_school_id is None:
            raise BadRequestError("school_id is required for super admin requests")
        return requested_school_id
    if actor.school_id is None:
        raise BadRequestError("User is not attached to a school")
    return actor.school_id


class TenantService(BaseService[School]):
    def __init__(self, db: AsyncSession, registry: Optional[TenantRegistry] = None):
        super().__init__(School, db)
        self.registry = registry if registry is not None else tenant_registry

    async def get_school(self, school_id: UUID) -> School:
        try:
            school = await self.get(school_id)
        except SQLAlchemyError as e:
            logger.error("Database error getting school %s: %s", school_id, e)
            raise DatabaseError("Database error occurred while fetching school")
        if school is None:
            raise SchoolNotFound(school_id)
        return school

    async def resolve_tenant_key(self, school_id: UUID) -> str:
        """Map a school to the name of its isolated database."""
        school = await self.get_school(school_id)
        return self._tenant_key_for(school)

    async def get_tenant_handle(self, school_id: UUID) -> Tuple[School, TenantHandle]:
        school = await self.get_school(school_id)
        handle = await self.registry.get_connection(self._tenant_key_for(school))
        return school, handle

    @staticmethod
    def _tenant_key_for(school: School) -> str:
        if not school.tenant_key:
            raise TenantConfigurationError(f"No tenant database configured for school: {school.name}")
        return school.tenant_key
