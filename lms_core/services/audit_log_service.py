# lms_core/services/audit_log_service.py
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
import uuid
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from .user_service import UserService
from ..models.base import utcnow
from ..models.tenant_specific.assignment_audit_log import AssignmentAuditLog, AssignmentAction
from ..models.tenant_specific.module import Module
from ..schemas.assignment_schemas import Actor
from ..schemas.audit_log_schemas import AuditLogEntryResponse, AuditLogFilter, AuditLogPage
from ..utils.pagination import PaginationParams, Paginator

logger = logging.getLogger(__name__)


class AuditLogService:
    """Writes and reads the tenant's assignment audit trail.

    Entries are only ever inserted. ``record`` adds the entry to the caller's
    session without committing, so the entry lands in the same transaction as
    the assignment change it describes.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def record(
        self,
        module_id: UUID,
        professor_id: UUID,
        action: AssignmentAction,
        actor: Actor,
        description: str,
        previous_data: Optional[Dict[str, Any]] = None,
        new_data: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> AssignmentAuditLog:
        at = at or utcnow()
        entry = AssignmentAuditLog(
            id=uuid.uuid4(),
            module_id=module_id,
            professor_id=professor_id,
            action=action.value,
            performed_by=actor.id,
            performed_by_role=actor.role.value,
            action_description=description,
            previous_data=previous_data or {},
            new_data=new_data or {},
            reason=reason,
            created_at=at,
            updated_at=at,
        )
        self.db.add(entry)
        return entry

    async def list_audit_logs(
        self,
        users: UserService,
        filter: Optional[AuditLogFilter] = None,
        page: int = 1,
        size: Optional[int] = None,
    ) -> AuditLogPage:
        """Newest-first page of entries with user names resolved from the central database"""
        params = PaginationParams.parse(page, size)
        filter = filter or AuditLogFilter()

        conditions = []
        if filter.module_id is not None:
            conditions.append(AssignmentAuditLog.module_id == filter.module_id)
        if filter.professor_id is not None:
            conditions.append(AssignmentAuditLog.professor_id == filter.professor_id)

        count_stmt = select(func.count()).select_from(AssignmentAuditLog).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(AssignmentAuditLog, Module.title)
            .outerjoin(Module, Module.id == AssignmentAuditLog.module_id)
            .where(*conditions)
            .order_by(AssignmentAuditLog.created_at.desc(), AssignmentAuditLog.id.desc())
            .offset(Paginator.calculate_offset(params.page, params.size))
            .limit(params.size)
        )
        rows = (await self.db.execute(stmt)).all()

        user_ids = set()
        for log, _ in rows:
            user_ids.add(log.professor_id)
            user_ids.add(log.performed_by)
        user_map = await users.get_users_by_ids(user_ids)

        entries = []
        for log, module_title in rows:
            professor = user_map.get(log.professor_id)
            performer = user_map.get(log.performed_by)
            entries.append(AuditLogEntryResponse(
                id=log.id,
                module_id=log.module_id,
                module_title=module_title,
                professor_id=log.professor_id,
                professor_name=professor.full_name if professor else "Unknown Professor",
                professor_email=professor.email if professor else "N/A",
                action=log.action,
                performed_by=log.performed_by,
                performed_by_name=performer.full_name if performer else "Unknown User",
                performed_by_email=performer.email if performer else "N/A",
                performed_by_role=log.performed_by_role,
                action_description=log.action_description,
                previous_data=log.previous_data or {},
                new_data=log.new_data or {},
                reason=log.reason,
                created_at=log.created_at,
            ))

        return AuditLogPage(
            entries=entries,
            pagination=Paginator.create_meta(params.page, params.size, total),
        )
