# lms_core/schemas/notification_schemas.py
from typing import Any, Dict
from uuid import UUID
from pydantic import BaseModel, Field

from ..models.tenant_specific.notification import NotificationType, RecipientType


class NotificationPayload(BaseModel):
    recipient_id: UUID
    recipient_type: RecipientType = RecipientType.PROFESSOR
    # Keyed by language code
    title: Dict[str, str]
    message: Dict[str, str]
    type: NotificationType = NotificationType.GENERAL
    metadata: Dict[str, Any] = Field(default_factory=dict)
