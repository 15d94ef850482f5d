# lms_core/services/module_assignment_service.py
"""Module ↔ professor assignment management for one school's tenant database.

``reconcile`` moves a module's professor set to a caller-supplied desired set
with the minimal number of grants and revokes. Validation (school, module,
professors) is all-or-nothing and happens before any write. The writes
themselves are best-effort per professor: every grant or revoke commits
together with its audit entry, and a failing professor becomes an ``error``
item without undoing its siblings.
"""
from typing import Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from .audit_log_service import AuditLogService
from .notification_service import (
    ASSIGNMENT_CREATED, ASSIGNMENT_REMOVED, NotificationDispatcher, Notifier,
    TenantNotificationService, build_assignment_notification, notification_dispatcher,
)
from .reconciliation import (
    AssignmentDiff, AssignmentSnapshot, ModuleAssignmentState,
    compute_additive_diff, compute_assignment_diff, to_audit_json,
)
from .tenant_service import TenantService
from .user_service import UserService
from ..core.config import settings
from ..core.exceptions import AssignmentNotFound, ModuleNotFound
from ..core.locks import KeyedLockRegistry, module_locks
from ..core.tenant_registry import TenantHandle, TenantRegistry
from ..models.base import utcnow
from ..models.shared.school import School
from ..models.tenant_specific.assignment_audit_log import AssignmentAction, AssignmentAuditLog
from ..models.tenant_specific.module import Module
from ..models.tenant_specific.module_assignment import ModuleProfessorAssignment
from ..schemas.assignment_schemas import (
    Actor, AssignmentItemResult, AssignmentStatus, ModuleAccess, ModuleAssignments,
    ModuleAssignmentView, ProfessorModuleView, ReconciliationResult, UnassignResult,
)
from ..schemas.audit_log_schemas import AuditLogFilter, AuditLogPage
from ..utils.pagination import PaginationMeta, PaginationParams, Paginator

logger = logging.getLogger(__name__)

MESSAGES = {
    AssignmentStatus.ASSIGNED: "Professor assigned successfully",
    AssignmentStatus.REACTIVATED: "Professor assignment reactivated successfully",
    AssignmentStatus.UNASSIGNED: "Professor unassigned successfully",
    AssignmentStatus.UNCHANGED: "Professor already assigned",
}
ASSIGN_FAILED = "Professor assignment failed"
UNASSIGN_FAILED = "Professor unassignment failed"

DESCRIPTION_ASSIGNED = "Assigned professor to module"
DESCRIPTION_REACTIVATED = "Reactivated professor assignment"
DESCRIPTION_UNASSIGNED = "Unassigned professor from module"

DEFAULT_ACTOR_NAME = "System Administrator"


class StaleAssignmentError(Exception):
    """The assignment row no longer matches the snapshot it was diffed against."""


class ModuleAssignmentService:
    def __init__(
        self,
        central_db: AsyncSession,
        registry: Optional[TenantRegistry] = None,
        notifier: Optional[Notifier] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        locks: Optional[KeyedLockRegistry] = None,
    ):
        self.tenants = TenantService(central_db, registry)
        self.users = UserService(central_db)
        # None means "store notifications in the tenant database"
        self.notifier = notifier
        self.dispatcher = dispatcher if dispatcher is not None else notification_dispatcher
        self.locks = locks if locks is not None else module_locks

    # Reconciliation

    async def reconcile(
        self,
        school_id: UUID,
        module_id: UUID,
        desired_professor_ids: Iterable[UUID],
        actor: Actor,
    ) -> ReconciliationResult:
        """Make the module's active professors exactly ``desired_professor_ids``."""
        logger.info("Managing assignments for module %s in school %s", module_id, school_id)
        return await self._apply(school_id, module_id, set(desired_professor_ids), actor, compute_assignment_diff)

    async def assign_professors(
        self,
        school_id: UUID,
        module_id: UUID,
        professor_ids: Iterable[UUID],
        actor: Actor,
    ) -> ReconciliationResult:
        """Grant-only: add the given professors, leave every other assignment alone."""
        logger.info("Assigning professors to module %s in school %s", module_id, school_id)
        return await self._apply(school_id, module_id, set(professor_ids), actor, compute_additive_diff)

    async def _apply(self, school_id, module_id, requested, actor, differ) -> ReconciliationResult:
        school, handle = await self.tenants.get_tenant_handle(school_id)

        async with self.locks.hold((handle.tenant_key, module_id)):
            async with handle.session() as db:
                module = await self._get_module(db, module_id)
                await self.users.validate_professors(school.id, requested)

                state = await self._load_state(db, module_id)
                diff: AssignmentDiff = differ(state.current, requested)
                logger.info(
                    "Module %s: %d to assign, %d to unassign, %d unchanged",
                    module_id, len(diff.to_assign), len(diff.to_unassign), len(diff.unchanged),
                )

                assigned: List[AssignmentItemResult] = []
                unassigned: List[AssignmentItemResult] = []
                events: List[Tuple[UUID, str]] = []
                audit_logs_created = 0

                for professor_id in sorted(diff.to_assign, key=str):
                    try:
                        status = await self._grant(db, module_id, professor_id, state.get(professor_id), actor)
                    except Exception as e:
                        await db.rollback()
                        logger.error("Error assigning professor %s: %s", professor_id, e)
                        assigned.append(AssignmentItemResult(
                            professor_id=professor_id, status=AssignmentStatus.ERROR, message=ASSIGN_FAILED,
                        ))
                        continue
                    audit_logs_created += 1
                    assigned.append(AssignmentItemResult(
                        professor_id=professor_id, status=status, message=MESSAGES[status],
                    ))
                    events.append((professor_id, ASSIGNMENT_CREATED))

                for professor_id in sorted(diff.to_unassign, key=str):
                    try:
                        await self._revoke(db, module_id, state.get(professor_id), actor)
                    except Exception as e:
                        await db.rollback()
                        logger.error("Error unassigning professor %s: %s", professor_id, e)
                        unassigned.append(AssignmentItemResult(
                            professor_id=professor_id, status=AssignmentStatus.ERROR, message=UNASSIGN_FAILED,
                        ))
                        continue
                    audit_logs_created += 1
                    unassigned.append(AssignmentItemResult(
                        professor_id=professor_id, status=AssignmentStatus.UNASSIGNED,
                        message=MESSAGES[AssignmentStatus.UNASSIGNED],
                    ))
                    events.append((professor_id, ASSIGNMENT_REMOVED))

                unchanged = [
                    AssignmentItemResult(
                        professor_id=professor_id, status=AssignmentStatus.UNCHANGED,
                        message=MESSAGES[AssignmentStatus.UNCHANGED],
                    )
                    for professor_id in sorted(diff.unchanged, key=str)
                ]

        await self._notify(school, handle, module, actor, events)

        return ReconciliationResult.build(
            module_id=module.id,
            module_title=module.title,
            assigned=assigned,
            unassigned=unassigned,
            unchanged=unchanged,
            audit_logs_created=audit_logs_created,
        )

    async def unassign_professor(
        self,
        school_id: UUID,
        module_id: UUID,
        professor_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> UnassignResult:
        logger.info("Unassigning professor %s from module %s", professor_id, module_id)
        school, handle = await self.tenants.get_tenant_handle(school_id)

        async with self.locks.hold((handle.tenant_key, module_id)):
            async with handle.session() as db:
                module = await self._get_module(db, module_id)
                professor = await self.users.get_professor(school.id, professor_id)

                state = await self._load_state(db, module_id)
                snapshot = state.get(professor_id)
                if snapshot is None or not snapshot.is_active:
                    raise AssignmentNotFound(module_id, professor_id)

                entry = await self._revoke(db, module_id, snapshot, actor, reason=reason)

        await self._notify(school, handle, module, actor, [(professor_id, ASSIGNMENT_REMOVED)])

        return UnassignResult(
            module_id=module.id,
            module_title=module.title,
            professor_id=professor_id,
            professor_name=professor.full_name,
            audit_log_id=entry.id,
        )

    # Mutations: each commits the row change and its audit entry together

    async def _grant(
        self,
        db: AsyncSession,
        module_id: UUID,
        professor_id: UUID,
        existing: Optional[AssignmentSnapshot],
        actor: Actor,
    ) -> AssignmentStatus:
        now = utcnow()
        new_data = to_audit_json({
            "assigned_at": now,
            "assigned_by": actor.id,
            "assigned_by_role": actor.role.value,
            "is_active": True,
        })

        if existing is not None:
            result = await db.execute(
                update(ModuleProfessorAssignment)
                .where(
                    ModuleProfessorAssignment.id == existing.id,
                    ModuleProfessorAssignment.is_active.is_(False),
                )
                .values(
                    is_active=True,
                    assigned_by=actor.id,
                    assigned_by_role=actor.role.value,
                    assigned_at=now,
                    unassigned_at=None,
                    unassigned_by=None,
                    unassigned_by_role=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise StaleAssignmentError(f"assignment {existing.id} changed since snapshot")
            status, description, previous = AssignmentStatus.REACTIVATED, DESCRIPTION_REACTIVATED, existing.audit_data()
        else:
            db.add(ModuleProfessorAssignment(
                module_id=module_id,
                professor_id=professor_id,
                assigned_by=actor.id,
                assigned_by_role=actor.role.value,
                assigned_at=now,
                is_active=True,
                created_at=now,
                updated_at=now,
            ))
            status, description, previous = AssignmentStatus.ASSIGNED, DESCRIPTION_ASSIGNED, {}

        AuditLogService(db).record(
            module_id=module_id,
            professor_id=professor_id,
            action=AssignmentAction.ASSIGN,
            actor=actor,
            description=description,
            previous_data=previous,
            new_data=new_data,
            at=now,
        )
        await db.commit()
        return status

    async def _revoke(
        self,
        db: AsyncSession,
        module_id: UUID,
        snapshot: AssignmentSnapshot,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> AssignmentAuditLog:
        now = utcnow()
        previous = snapshot.audit_data()

        result = await db.execute(
            update(ModuleProfessorAssignment)
            .where(
                ModuleProfessorAssignment.id == snapshot.id,
                ModuleProfessorAssignment.is_active.is_(True),
            )
            .values(
                is_active=False,
                unassigned_at=now,
                unassigned_by=actor.id,
                unassigned_by_role=actor.role.value,
                # Cleared so an inactive row never carries stale attribution
                assigned_at=None,
                assigned_by=None,
                assigned_by_role=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleAssignmentError(f"assignment {snapshot.id} changed since snapshot")

        entry = AuditLogService(db).record(
            module_id=module_id,
            professor_id=snapshot.professor_id,
            action=AssignmentAction.UNASSIGN,
            actor=actor,
            description=DESCRIPTION_UNASSIGNED,
            previous_data=previous,
            new_data=to_audit_json({
                "is_active": False,
                "unassigned_at": now,
                "unassigned_by": actor.id,
                "unassigned_by_role": actor.role.value,
                "assigned_by": None,
                "assigned_by_role": None,
                "assigned_at": None,
            }),
            reason=reason,
            at=now,
        )
        await db.commit()
        return entry

    # Reads

    async def get_module_assignments(self, school_id: UUID, module_id: UUID) -> ModuleAssignments:
        _, handle = await self.tenants.get_tenant_handle(school_id)
        async with handle.session() as db:
            module = await self._get_module(db, module_id)
            result = await db.execute(
                select(ModuleProfessorAssignment).where(
                    ModuleProfessorAssignment.module_id == module_id,
                    ModuleProfessorAssignment.is_active.is_(True),
                ).order_by(ModuleProfessorAssignment.assigned_at.desc())
            )
            assignments = list(result.scalars().all())

        professors = await self.users.get_users_by_ids(a.professor_id for a in assignments)
        views = []
        for assignment in assignments:
            professor = professors.get(assignment.professor_id)
            views.append(ModuleAssignmentView(
                id=assignment.id,
                professor_id=assignment.professor_id,
                professor_name=professor.full_name if professor else "N/A",
                professor_email=professor.email if professor else "N/A",
                assigned_at=assignment.assigned_at,
                assigned_by=assignment.assigned_by,
            ))
        return ModuleAssignments(
            module_id=module.id,
            module_title=module.title,
            assignments=views,
            total_assignments=len(views),
        )

    async def get_professor_assignments(
        self,
        school_id: UUID,
        professor_id: UUID,
        page: int = 1,
        size: Optional[int] = None,
    ) -> Tuple[List[ProfessorModuleView], PaginationMeta]:
        params = PaginationParams.parse(page, size)
        school, handle = await self.tenants.get_tenant_handle(school_id)
        await self.users.get_professor(school.id, professor_id)

        conditions = (
            ModuleProfessorAssignment.professor_id == professor_id,
            ModuleProfessorAssignment.is_active.is_(True),
        )
        async with handle.session() as db:
            total = (await db.execute(
                select(func.count()).select_from(ModuleProfessorAssignment).where(*conditions)
            )).scalar() or 0
            rows = (await db.execute(
                select(ModuleProfessorAssignment, Module)
                .join(Module, Module.id == ModuleProfessorAssignment.module_id)
                .where(*conditions)
                .order_by(ModuleProfessorAssignment.assigned_at.desc())
                .offset(Paginator.calculate_offset(params.page, params.size))
                .limit(params.size)
            )).all()

        views = [
            ProfessorModuleView(
                id=assignment.id,
                module_id=module.id,
                module_title=module.title,
                module_subject=module.subject,
                module_category=module.category,
                module_difficulty=module.difficulty,
                module_published=bool(module.published),
                assigned_at=assignment.assigned_at,
                assigned_by=assignment.assigned_by,
            )
            for assignment, module in rows
        ]
        return views, Paginator.create_meta(params.page, params.size, total)

    async def check_professor_module_access(
        self, school_id: UUID, professor_id: UUID, module_id: UUID
    ) -> ModuleAccess:
        _, handle = await self.tenants.get_tenant_handle(school_id)
        async with handle.session() as db:
            assignment_id = (await db.execute(
                select(ModuleProfessorAssignment.id).where(
                    ModuleProfessorAssignment.module_id == module_id,
                    ModuleProfessorAssignment.professor_id == professor_id,
                    ModuleProfessorAssignment.is_active.is_(True),
                )
            )).scalar_one_or_none()
        return ModuleAccess(has_access=assignment_id is not None, assignment_id=assignment_id)

    async def list_audit_logs(
        self,
        school_id: UUID,
        filter: Optional[AuditLogFilter] = None,
        page: int = 1,
        size: Optional[int] = None,
    ) -> AuditLogPage:
        _, handle = await self.tenants.get_tenant_handle(school_id)
        async with handle.session() as db:
            return await AuditLogService(db).list_audit_logs(self.users, filter, page, size)

    # Helpers

    @staticmethod
    async def _get_module(db: AsyncSession, module_id: UUID) -> Module:
        module = (await db.execute(
            select(Module).where(Module.id == module_id, Module.deleted_at.is_(None))
        )).scalar_one_or_none()
        if module is None:
            raise ModuleNotFound(module_id)
        # Detached so per-item rollbacks cannot expire it
        db.expunge(module)
        return module

    @staticmethod
    async def _load_state(db: AsyncSession, module_id: UUID) -> ModuleAssignmentState:
        """Single read of every assignment row of the module, active or not."""
        A = ModuleProfessorAssignment
        rows = (await db.execute(
            select(
                A.id, A.professor_id, A.is_active, A.assigned_at, A.assigned_by,
                A.assigned_by_role, A.unassigned_at, A.unassigned_by,
            ).where(A.module_id == module_id)
        )).all()
        return ModuleAssignmentState.from_snapshots(
            AssignmentSnapshot(
                id=row.id,
                professor_id=row.professor_id,
                is_active=bool(row.is_active),
                assigned_at=row.assigned_at,
                assigned_by=row.assigned_by,
                assigned_by_role=row.assigned_by_role,
                unassigned_at=row.unassigned_at,
                unassigned_by=row.unassigned_by,
            )
            for row in rows
        )

    async def _actor_name(self, actor: Actor) -> str:
        try:
            users = await self.users.get_users_by_ids([actor.id])
        except Exception as e:
            logger.warning("Could not fetch assigned by user details: %s", e)
            return DEFAULT_ACTOR_NAME
        user = users.get(actor.id)
        return (user.full_name if user else "") or DEFAULT_ACTOR_NAME

    async def _notify(
        self,
        school: School,
        handle: TenantHandle,
        module: Module,
        actor: Actor,
        events: List[Tuple[UUID, str]],
    ) -> None:
        if not events or not settings.notifications_enabled:
            return
        actor_name = await self._actor_name(actor)
        notifier = self.notifier or TenantNotificationService(handle, school.id)
        payloads = [
            build_assignment_notification(professor_id, kind, module, actor, actor_name, school.id)
            for professor_id, kind in events
        ]
        scheduled = self.dispatcher.dispatch(notifier, payloads)
        logger.info("Scheduled %d assignment notifications for module %s", scheduled, module.id)
