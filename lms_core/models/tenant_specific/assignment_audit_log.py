# lms_core/models/tenant_specific/assignment_audit_log.py
"""Append-only history of module/professor assignment mutations."""
import enum
from sqlalchemy import Column, String, ForeignKey, Text, JSON, Index
from sqlalchemy.dialects.postgresql import UUID
from ..base import TenantBase


class AssignmentAction(str, enum.Enum):
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"


class AssignmentAuditLog(TenantBase):
    __tablename__ = "assignment_audit_logs"

    module_id = Column(UUID(as_uuid=True), ForeignKey("modules.id"), nullable=False, index=True)
    professor_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    action = Column(String(20), nullable=False)
    performed_by = Column(UUID(as_uuid=True), nullable=False, index=True)
    performed_by_role = Column(String(20), nullable=False)
    action_description = Column(String(255), nullable=False)
    previous_data = Column(JSON, nullable=False, default=dict)
    new_data = Column(JSON, nullable=False, default=dict)
    reason = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_audit_module_created', 'module_id', 'created_at'),
        Index('idx_audit_professor_created', 'professor_id', 'created_at'),
        Index('idx_audit_performer_created', 'performed_by', 'created_at'),
        Index('idx_audit_action_created', 'action', 'created_at'),
    )
