# lms_core/services/reconciliation.py
"""Set arithmetic behind module/professor reconciliation.

Everything here is pure: the service layer loads one snapshot of a module's
assignment records, asks :func:`compute_assignment_diff` what to change and
then applies the changes item by item.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Any, Dict, FrozenSet, Iterable, Optional
from uuid import UUID


@dataclass(frozen=True)
class AssignmentSnapshot:
    """Point-in-time copy of one assignment row."""
    id: UUID
    professor_id: UUID
    is_active: bool
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[UUID] = None
    assigned_by_role: Optional[str] = None
    unassigned_at: Optional[datetime] = None
    unassigned_by: Optional[UUID] = None

    def audit_data(self) -> Dict[str, Any]:
        data = {
            "assigned_at": self.assigned_at,
            "assigned_by": self.assigned_by,
            "is_active": self.is_active,
        }
        if not self.is_active:
            data.update(unassigned_at=self.unassigned_at, unassigned_by=self.unassigned_by)
        return to_audit_json(data)


@dataclass(frozen=True)
class ModuleAssignmentState:
    """Every assignment record of one module keyed by professor id."""
    records: Dict[UUID, AssignmentSnapshot] = field(default_factory=dict)

    @classmethod
    def from_snapshots(cls, snapshots: Iterable[AssignmentSnapshot]) -> "ModuleAssignmentState":
        return cls(records={s.professor_id: s for s in snapshots})

    @property
    def current(self) -> FrozenSet[UUID]:
        """Professors with an active assignment."""
        return frozenset(pid for pid, s in self.records.items() if s.is_active)

    @property
    def all_existing(self) -> FrozenSet[UUID]:
        """Professors with any record, active or not."""
        return frozenset(self.records)

    def get(self, professor_id: UUID) -> Optional[AssignmentSnapshot]:
        return self.records.get(professor_id)


@dataclass(frozen=True)
class AssignmentDiff:
    to_assign: FrozenSet[UUID]
    to_unassign: FrozenSet[UUID]
    unchanged: FrozenSet[UUID]

    @property
    def is_noop(self) -> bool:
        return not self.to_assign and not self.to_unassign

    def __iter__(self):
        return iter((self.to_assign, self.to_unassign, self.unchanged))


def compute_assignment_diff(current: AbstractSet[UUID], desired: AbstractSet[UUID]) -> AssignmentDiff:
    """Minimal grant/revoke sets moving ``current`` to ``desired``.

    The three sets are pairwise disjoint and their union is ``current | desired``.
    """
    current, desired = frozenset(current), frozenset(desired)
    return AssignmentDiff(
        to_assign=desired - current,
        to_unassign=current - desired,
        unchanged=current & desired,
    )


def compute_additive_diff(current: AbstractSet[UUID], requested: AbstractSet[UUID]) -> AssignmentDiff:
    """Grant-only variant: nothing outside ``requested`` is revoked or reported."""
    current, requested = frozenset(current), frozenset(requested)
    return AssignmentDiff(
        to_assign=requested - current,
        to_unassign=frozenset(),
        unchanged=requested & current,
    )


def to_audit_json(data: Dict[str, Any]) -> Dict[str, Any]:
    """Audit snapshots are stored as JSON; stringify ids and timestamps."""
    out = {}
    for key, value in data.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, UUID):
            value = str(value)
        out[key] = value
    return out
