import uuid

import pytest

from lms_core.core.exceptions import BadRequestError
from lms_core.models import RoleEnum
from lms_core.schemas.assignment_schemas import Actor
from lms_core.schemas.audit_log_schemas import AuditLogFilter

from .conftest import RecordingNotifier


async def seed_history(env, service):
    a, b, c = env.professors[:3]
    await service.reconcile(env.school_a, env.module_id, [a, b, c], env.actor)
    await service.reconcile(env.school_a, env.module_id, [a], env.actor)


def test_pages_newest_first_with_names(run_env):
    async def scenario(env):
        async with env.central() as db:
            service = env.service(db, RecordingNotifier())
            await seed_history(env, service)
            first = await service.list_audit_logs(env.school_a, page=1, size=2)
            rest = await service.list_audit_logs(env.school_a, page=2, size=4)
        return env, first, rest

    env, first, rest = run_env(scenario)
    assert first.pagination.total == 5
    assert first.pagination.total_pages == 3
    assert first.pagination.has_next and not first.pagination.has_previous
    assert [e.action.value for e in first.entries] == ["UNASSIGN", "UNASSIGN"]
    assert len(rest.entries) == 1 and rest.entries[0].action.value == "ASSIGN"

    entry = first.entries[0]
    assert entry.module_title == "Algebra I"
    assert entry.professor_name == env.names[entry.professor_id]
    assert entry.performed_by_name == "Ada Admin"
    assert entry.performed_by_email == "admin@a.test"
    assert first.entries[0].created_at >= first.entries[1].created_at


def test_default_page_size_and_filters(run_env):
    async def scenario(env):
        async with env.central() as db:
            service = env.service(db, RecordingNotifier())
            await seed_history(env, service)
            everything = await service.list_audit_logs(env.school_a)
            by_prof = await service.list_audit_logs(
                env.school_a, AuditLogFilter(professor_id=env.professors[1])
            )
            by_other_module = await service.list_audit_logs(
                env.school_a, AuditLogFilter(module_id=uuid.uuid4())
            )
        return env, everything, by_prof, by_other_module

    env, everything, by_prof, by_other_module = run_env(scenario)
    assert everything.pagination.size == 10
    assert len(everything.entries) == 5
    assert [e.action.value for e in by_prof.entries] == ["UNASSIGN", "ASSIGN"]
    assert all(e.professor_id == env.professors[1] for e in by_prof.entries)
    assert by_other_module.entries == [] and by_other_module.pagination.total == 0


def test_unknown_users_fall_back_to_placeholders(run_env):
    async def scenario(env):
        ghost = Actor(id=uuid.uuid4(), role=RoleEnum.SUPER_ADMIN)
        async with env.central() as db:
            service = env.service(db, RecordingNotifier())
            await service.reconcile(env.school_a, env.module_id, [env.professors[0]], ghost)
            return await service.list_audit_logs(env.school_a)

    page = run_env(scenario)
    [entry] = page.entries
    assert entry.performed_by_name == "Unknown User"
    assert entry.performed_by_email == "N/A"
    assert entry.performed_by_role == "SUPER_ADMIN"


@pytest.mark.parametrize("page,size", [(0, 10), (1, 0), (1, 101)])
def test_invalid_paging_is_rejected(run_env, page, size):
    async def scenario(env):
        async with env.central() as db:
            with pytest.raises(BadRequestError):
                await env.service(db).list_audit_logs(env.school_a, page=page, size=size)

    run_env(scenario)
