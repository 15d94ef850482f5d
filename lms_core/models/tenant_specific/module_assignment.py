# lms_core/models/tenant_specific/module_assignment.py
# One row per (module, professor) pair, toggled active/inactive across grant cycles
from sqlalchemy import Column, String, ForeignKey, Boolean, DateTime, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from ..base import TenantBase


class ModuleProfessorAssignment(TenantBase):
    __tablename__ = "module_professor_assignments"

    module_id = Column(UUID(as_uuid=True), ForeignKey("modules.id"), nullable=False, index=True)
    # References central users; no cross-database foreign key
    professor_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    # Null while inactive
    assigned_by = Column(UUID(as_uuid=True), nullable=True, index=True)
    assigned_by_role = Column(String(20), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    unassigned_at = Column(DateTime(timezone=True), nullable=True)
    unassigned_by = Column(UUID(as_uuid=True), nullable=True, index=True)
    unassigned_by_role = Column(String(20), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('module_id', 'professor_id', name='uq_module_professor'),
        Index('idx_assignment_module_active', 'module_id', 'is_active'),
        Index('idx_assignment_professor_active', 'professor_id', 'is_active'),
    )
