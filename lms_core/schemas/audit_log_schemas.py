# lms_core/schemas/audit_log_schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel

from ..models.tenant_specific.assignment_audit_log import AssignmentAction
from ..utils.pagination import PaginationMeta


class AuditLogFilter(BaseModel):
    module_id: Optional[UUID] = None
    professor_id: Optional[UUID] = None


class AuditLogEntryResponse(BaseModel):
    id: UUID
    module_id: UUID
    module_title: Optional[str] = None
    professor_id: UUID
    professor_name: str
    professor_email: str
    action: AssignmentAction
    performed_by: UUID
    performed_by_name: str
    performed_by_email: str
    performed_by_role: str
    action_description: str
    previous_data: Dict[str, Any]
    new_data: Dict[str, Any]
    reason: Optional[str] = None
    created_at: datetime


class AuditLogPage(BaseModel):
    entries: List[AuditLogEntryResponse]
    pagination: PaginationMeta
