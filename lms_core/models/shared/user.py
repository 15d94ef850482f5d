# lms_core/models/shared/user.py
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from ..base import CentralBase


class RoleEnum(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    PROFESSOR = "PROFESSOR"
    STUDENT = "STUDENT"


class User(CentralBase):
    __tablename__ = "users"

    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(254), nullable=False, unique=True, index=True)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id"), nullable=True, index=True)
    role = Column(String(20), nullable=False, index=True)
    preferred_language = Column(String(5), nullable=False, default="en")
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_user_school_role', 'school_id', 'role'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
