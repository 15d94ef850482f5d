import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from lms_core.core.database import make_session_factory
from lms_core.core.locks import KeyedLockRegistry
from lms_core.core.tenant_registry import TenantRegistry
from lms_core.models import CentralBase, Module, School, User, RoleEnum
from lms_core.schemas.assignment_schemas import Actor
from lms_core.services.module_assignment_service import ModuleAssignmentService
from lms_core.services.notification_service import NotificationDispatcher

TENANT_A = "lms_school_a"
TENANT_B = "lms_school_b"


class RecordingNotifier:
    """Collects payloads instead of writing them anywhere."""

    def __init__(self, fail: bool = False):
        self.payloads = []
        self.fail = fail

    async def notify(self, payload) -> bool:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.payloads.append(payload)
        return True


@dataclass
class LMSEnv:
    central: object
    registry: TenantRegistry
    dispatcher: NotificationDispatcher
    locks: KeyedLockRegistry
    school_a: uuid.UUID
    school_b: uuid.UUID
    school_c: uuid.UUID
    professors: List[uuid.UUID]
    foreign_professor: uuid.UUID
    deleted_professor: uuid.UUID
    student: uuid.UUID
    admin: uuid.UUID
    module_id: uuid.UUID
    deleted_module_id: uuid.UUID
    names: Dict[uuid.UUID, str] = field(default_factory=dict)

    @property
    def actor(self) -> Actor:
        return Actor(id=self.admin, role=RoleEnum.SCHOOL_ADMIN, school_id=self.school_a)

    def service(self, db, notifier=None) -> ModuleAssignmentService:
        return ModuleAssignmentService(
            db,
            registry=self.registry,
            notifier=notifier,
            dispatcher=self.dispatcher,
            locks=self.locks,
        )

    async def tenant(self, key: str = TENANT_A):
        return await self.registry.get_connection(key)


async def _seed_central(session_factory, env_ids):
    async with session_factory() as db:
        db.add_all([
            School(id=env_ids["school_a"], name="School A", email="a@school.test", tenant_key=TENANT_A),
            School(id=env_ids["school_b"], name="School B", email="b@school.test", tenant_key=TENANT_B),
            School(id=env_ids["school_c"], name="School C", email="c@school.test", tenant_key=None),
        ])
        await db.flush()

        users = []
        for i, pid in enumerate(env_ids["professors"], start=1):
            users.append(User(
                id=pid, first_name="Prof", last_name=f"Number{i}", email=f"prof{i}@a.test",
                school_id=env_ids["school_a"], role=RoleEnum.PROFESSOR.value,
            ))
        users += [
            User(id=env_ids["foreign_professor"], first_name="Other", last_name="School",
                 email="prof@b.test", school_id=env_ids["school_b"], role=RoleEnum.PROFESSOR.value),
            User(id=env_ids["deleted_professor"], first_name="Gone", last_name="Away",
                 email="gone@a.test", school_id=env_ids["school_a"], role=RoleEnum.PROFESSOR.value,
                 deleted_at=env_ids["now"]),
            User(id=env_ids["student"], first_name="Stu", last_name="Dent",
                 email="student@a.test", school_id=env_ids["school_a"], role=RoleEnum.STUDENT.value),
            User(id=env_ids["admin"], first_name="Ada", last_name="Admin",
                 email="admin@a.test", school_id=env_ids["school_a"], role=RoleEnum.SCHOOL_ADMIN.value),
        ]
        db.add_all(users)
        await db.commit()
        return {u.id: u.full_name for u in users}


@pytest.fixture()
def run_env(tmp_path) -> Callable[[Callable[[LMSEnv], Awaitable]], object]:
    """Runs one async scenario against a seeded central db and sqlite tenant databases."""
    from lms_core.models.base import utcnow

    def run(scenario):
        async def main():
            central_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/central.db")
            async with central_engine.begin() as conn:
                await conn.run_sync(CentralBase.metadata.create_all)
            central = make_session_factory(central_engine)

            ids = {
                "school_a": uuid.uuid4(),
                "school_b": uuid.uuid4(),
                "school_c": uuid.uuid4(),
                "professors": [uuid.uuid4() for _ in range(4)],
                "foreign_professor": uuid.uuid4(),
                "deleted_professor": uuid.uuid4(),
                "student": uuid.uuid4(),
                "admin": uuid.uuid4(),
                "now": utcnow(),
            }
            names = await _seed_central(central, ids)

            registry = TenantRegistry(base_uri=f"sqlite+aiosqlite:///{tmp_path}", auto_create_schema=True)
            handle = await registry.get_connection(TENANT_A)
            module_id, deleted_module_id = uuid.uuid4(), uuid.uuid4()
            async with handle.session() as db:
                db.add_all([
                    Module(id=module_id, title="Algebra I", subject="Mathematics",
                           category="core", difficulty="beginner", duration=45, published=True),
                    Module(id=deleted_module_id, title="Retired", subject="History",
                           deleted_at=ids["now"]),
                ])
                await db.commit()

            env = LMSEnv(
                central=central,
                registry=registry,
                dispatcher=NotificationDispatcher(),
                locks=KeyedLockRegistry(),
                school_a=ids["school_a"],
                school_b=ids["school_b"],
                school_c=ids["school_c"],
                professors=ids["professors"],
                foreign_professor=ids["foreign_professor"],
                deleted_professor=ids["deleted_professor"],
                student=ids["student"],
                admin=ids["admin"],
                module_id=module_id,
                deleted_module_id=deleted_module_id,
                names=names,
            )
            try:
                return await scenario(env)
            finally:
                await env.dispatcher.drain()
                await registry.dispose_all()
                await central_engine.dispose()

        return asyncio.run(main())

    return run
