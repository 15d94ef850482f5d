# lms_core/models/shared/school.py
"""School model definition (central database)."""
import enum
from sqlalchemy import Column, String, DateTime, Index
from ..base import CentralBase


class SchoolStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class School(CentralBase):
    __tablename__ = "schools"

    name = Column(String(200), nullable=False, index=True)
    email = Column(String(254), nullable=False, unique=True)
    # Name of the school's isolated database
    tenant_key = Column(String(100), nullable=True, unique=True)
    status = Column(String(20), default=SchoolStatus.ACTIVE.value, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_school_status_deleted', 'status', 'deleted_at'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SchoolStatus.ACTIVE.value and self.deleted_at is None
