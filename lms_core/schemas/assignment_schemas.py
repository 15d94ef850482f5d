# lms_core/schemas/assignment_schemas.py
import enum
from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from ..models.shared.user import RoleEnum


class Actor(BaseModel):
    """The authenticated user performing an operation."""
    id: UUID
    role: RoleEnum
    school_id: Optional[UUID] = None


class AssignmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    REACTIVATED = "reactivated"
    UNASSIGNED = "unassigned"
    UNCHANGED = "unchanged"
    ERROR = "error"


class AssignmentItemResult(BaseModel):
    professor_id: UUID
    status: AssignmentStatus
    message: str


class AssignmentSummary(BaseModel):
    total_assigned: int
    total_unassigned: int
    total_unchanged: int
    total_processed: int


class ReconciliationResult(BaseModel):
    module_id: UUID
    module_title: str
    assigned: List[AssignmentItemResult] = Field(default_factory=list)
    unassigned: List[AssignmentItemResult] = Field(default_factory=list)
    unchanged: List[AssignmentItemResult] = Field(default_factory=list)
    summary: AssignmentSummary
    audit_logs_created: int = 0

    @classmethod
    def build(
        cls,
        module_id: UUID,
        module_title: str,
        assigned: List[AssignmentItemResult],
        unassigned: List[AssignmentItemResult],
        unchanged: List[AssignmentItemResult],
        audit_logs_created: int,
    ) -> "ReconciliationResult":
        return cls(
            module_id=module_id,
            module_title=module_title,
            assigned=assigned,
            unassigned=unassigned,
            unchanged=unchanged,
            summary=AssignmentSummary(
                total_assigned=len(assigned),
                total_unassigned=len(unassigned),
                total_unchanged=len(unchanged),
                total_processed=len(assigned) + len(unassigned) + len(unchanged),
            ),
            audit_logs_created=audit_logs_created,
        )


class UnassignResult(BaseModel):
    module_id: UUID
    module_title: str
    professor_id: UUID
    professor_name: str
    audit_log_id: UUID


class ModuleAssignmentView(BaseModel):
    id: UUID
    professor_id: UUID
    professor_name: str
    professor_email: str
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[UUID] = None


class ModuleAssignments(BaseModel):
    module_id: UUID
    module_title: str
    assignments: List[ModuleAssignmentView]
    total_assignments: int


class ProfessorModuleView(BaseModel):
    id: UUID
    module_id: UUID
    module_title: str
    module_subject: Optional[str] = None
    module_category: Optional[str] = None
    module_difficulty: Optional[str] = None
    module_published: bool = False
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[UUID] = None


class ModuleAccess(BaseModel):
    has_access: bool
    assignment_id: Optional[UUID] = None
