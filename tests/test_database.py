import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from lms_core.core import database
from lms_core.core.config import settings


def test_sqlite_engines_skip_pool_sizing():
    options = database.engine_options("sqlite+aiosqlite:///tmp/x.db", "lms_core_test")
    assert options == {"pool_pre_ping": True, "echo": False}


def test_asyncpg_engines_get_pool_and_server_settings():
    options = database.engine_options("postgresql+asyncpg://db:5432/lms_school_a", "lms_core_lms_school_a")

    assert options["pool_size"] == settings.db_pool_size
    assert options["max_overflow"] == settings.db_max_overflow
    assert options["pool_recycle"] == settings.db_pool_recycle
    assert options["connect_args"]["server_settings"]["application_name"] == "lms_core_lms_school_a"


def test_health_check(tmp_path):
    async def scenario():
        healthy = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/ok.db")
        broken = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/x.db")
        try:
            return await database.health_check_db(healthy), await database.health_check_db(broken)
        finally:
            await healthy.dispose()
            await broken.dispose()

    assert asyncio.run(scenario()) == (True, False)


def test_central_session_dependency(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "central_database_url", f"sqlite+aiosqlite:///{tmp_path}/central.db")
    monkeypatch.setattr(database, "_central_engine", None)
    monkeypatch.setattr(database, "_central_session_factory", None)

    async def scenario():
        sessions = database.get_central_db()
        try:
            session = await sessions.__anext__()
            value = (await session.execute(text("SELECT 1"))).scalar()
            await sessions.aclose()
            return value
        finally:
            await database.close_db_connections()

    assert asyncio.run(scenario()) == 1
    assert database._central_engine is None
