# lms_core/models/tenant_specific/notification.py
from sqlalchemy import Column, String, JSON, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from ..base import TenantBase
import enum


class NotificationType(str, enum.Enum):
    PROFESSOR_ASSIGNED = "PROFESSOR_ASSIGNED"
    PROFESSOR_UNASSIGNED = "PROFESSOR_UNASSIGNED"
    GENERAL = "GENERAL"


class NotificationStatus(str, enum.Enum):
    UNREAD = "UNREAD"
    READ = "READ"


class RecipientType(str, enum.Enum):
    STUDENT = "STUDENT"
    PROFESSOR = "PROFESSOR"


class Notification(TenantBase):
    __tablename__ = "notifications"

    recipient_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    recipient_type = Column(String(20), nullable=False)
    # Multi-language content: {"en": ..., "fr": ...}
    title = Column(JSON, nullable=False)
    message = Column(JSON, nullable=False)
    type = Column(String(30), nullable=False, default=NotificationType.GENERAL.value)
    status = Column(String(20), nullable=False, default=NotificationStatus.UNREAD.value)
    # "metadata" is reserved on declarative classes
    payload = Column("metadata", JSON, nullable=False, default=dict)
    school_id = Column(UUID(as_uuid=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_notification_recipient_status', 'recipient_id', 'status'),
    )
