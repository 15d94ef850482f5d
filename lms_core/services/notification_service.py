# lms_core/services/notification_service.py
"""Best-effort professor notifications for assignment changes.

Delivery never affects the assignment data: notifications are dispatched after
the assignment transactions commit, each on its own detached task, and any
failure is logged and dropped (at most once, no retries).
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Protocol, Set
from uuid import UUID

from ..core.tenant_registry import TenantHandle
from ..models.base import utcnow
from ..models.tenant_specific.module import Module
from ..models.tenant_specific.notification import (
    Notification, NotificationStatus, NotificationType, RecipientType
)
from ..schemas.assignment_schemas import Actor
from ..schemas.notification_schemas import NotificationPayload

logger = logging.getLogger(__name__)

ASSIGNMENT_CREATED = "assignment_created"
ASSIGNMENT_REMOVED = "assignment_removed"

_TEMPLATES = {
    ASSIGNMENT_CREATED: {
        "type": NotificationType.PROFESSOR_ASSIGNED,
        "title": {
            "en": "New Module Assignment",
            "fr": "Nouvelle Attribution de Module",
        },
        "message": {
            "en": 'You have been assigned to the module "{title}" by {actor}. '
                  "You now have full access to view, edit, and manage this module.",
            "fr": 'Vous avez été assigné au module "{title}" par {actor}. '
                  "Vous avez maintenant un accès complet pour voir, modifier et gérer ce module.",
        },
    },
    ASSIGNMENT_REMOVED: {
        "type": NotificationType.PROFESSOR_UNASSIGNED,
        "title": {
            "en": "Module Assignment Removed",
            "fr": "Attribution de Module Supprimée",
        },
        "message": {
            "en": 'You have been unassigned from the module "{title}" by {actor}. '
                  "You no longer have access to this module.",
            "fr": 'Vous avez été désassigné du module "{title}" par {actor}. '
                  "Vous n'avez plus accès à ce module.",
        },
    },
}

_FALLBACK_TEMPLATE = {
    "type": NotificationType.GENERAL,
    "title": {
        "en": "Module Assignment Notification",
        "fr": "Notification d'Attribution de Module",
    },
    "message": {
        "en": 'There has been a change to your module assignment for "{title}" by {actor}.',
        "fr": 'Il y a eu un changement dans votre attribution de module pour "{title}" par {actor}.',
    },
}


class Notifier(Protocol):
    async def notify(self, payload: NotificationPayload) -> bool:
        """Deliver one notification; report failure by returning False."""
        ...


def build_assignment_notification(
    professor_id: UUID,
    kind: str,
    module: Module,
    actor: Actor,
    actor_name: str,
    school_id: Optional[UUID] = None,
    at: Optional[datetime] = None,
) -> NotificationPayload:
    template = _TEMPLATES.get(kind, _FALLBACK_TEMPLATE)
    context = {"title": module.title, "actor": actor_name}
    at = at or utcnow()
    metadata: Dict[str, Any] = {
        "module_id": str(module.id),
        "module_title": module.title,
        "module_subject": module.subject,
        "module_category": module.category,
        "module_difficulty": module.difficulty,
        "module_duration": module.duration,
        "assignment_type": kind,
        "assigned_by": str(actor.id),
        "assigned_by_name": actor_name,
        "assigned_by_role": actor.role.value,
        "school_id": str(school_id) if school_id else None,
        "timestamp": at.isoformat(),
    }
    return NotificationPayload(
        recipient_id=professor_id,
        recipient_type=RecipientType.PROFESSOR,
        title=dict(template["title"]),
        message={lang: text.format(**context) for lang, text in template["message"].items()},
        type=template["type"],
        metadata=metadata,
    )


class TenantNotificationService:
    """Default notifier: stores an in-app notification in the tenant database."""

    def __init__(self, handle: TenantHandle, school_id: Optional[UUID] = None):
        self.handle = handle
        self.school_id = school_id

    async def notify(self, payload: NotificationPayload) -> bool:
        try:
            async with self.handle.session() as db:
                db.add(Notification(
                    recipient_id=payload.recipient_id,
                    recipient_type=payload.recipient_type.value,
                    title=payload.title,
                    message=payload.message,
                    type=payload.type.value,
                    status=NotificationStatus.UNREAD.value,
                    payload=payload.metadata,
                    school_id=self.school_id,
                ))
                await db.commit()
        except Exception as e:
            logger.error(
                "Error creating notification for professor %s in tenant %s: %s",
                payload.recipient_id, self.handle.tenant_key, e,
            )
            return False
        logger.info("Notification created for professor %s", payload.recipient_id)
        return True


class NotificationDispatcher:
    """Runs notifier calls on detached tasks and keeps them referenced until done."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, notifier: Notifier, payloads: Iterable[NotificationPayload]) -> int:
        scheduled = 0
        for payload in payloads:
            task = asyncio.create_task(self._deliver(notifier, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            scheduled += 1
        return scheduled

    @staticmethod
    async def _deliver(notifier: Notifier, payload: NotificationPayload) -> bool:
        try:
            delivered = await notifier.notify(payload)
        except Exception:
            logger.exception("Error sending notification to professor %s", payload.recipient_id)
            return False
        if not delivered:
            logger.warning("Notification to professor %s was not delivered", payload.recipient_id)
        return bool(delivered)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


notification_dispatcher = NotificationDispatcher()
