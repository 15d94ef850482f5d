# lms_core/core/database.py
"""Central database connection and session management using SQLAlchemy."""
from typing import Any, AsyncGenerator, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.engine import make_url
from sqlalchemy import text
import logging

from .config import settings

logger = logging.getLogger(__name__)

_central_engine: Optional[AsyncEngine] = None
_central_session_factory: Optional[async_sessionmaker] = None


def engine_options(url: str, application_name: str) -> Dict[str, Any]:
    """Engine keyword arguments shared by the central and tenant engines."""
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": False,
    }
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return options

    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,  # Keep 30 minutes - good for Aurora
    )
    if make_url(url).get_driver_name() == "asyncpg":
        options["connect_args"] = {
            "command_timeout": 60,
            "server_settings": {
                "jit": "off",
                "application_name": application_name,
                "idle_in_transaction_session_timeout": "60s",
                "lock_timeout": "30s",
            }
        }
    return options


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
        autoflush=False,  # Manual control over flushing
    )


def get_central_engine() -> AsyncEngine:
    global _central_engine
    if _central_engine is None:
        _central_engine = create_async_engine(
            settings.central_database_url,
            **engine_options(settings.central_database_url, f"{settings.app_name}_central"),
        )
    return _central_engine


def get_central_session_factory() -> async_sessionmaker:
    global _central_session_factory
    if _central_session_factory is None:
        _central_session_factory = make_session_factory(get_central_engine())
    return _central_session_factory


async def get_central_db() -> AsyncGenerator[AsyncSession, None]:
    """Get central database session with proper error handling"""
    async with get_central_session_factory()() as session:
        try:
            yield session
        except Exception as e:
            logger.error("Central database session error: %s", e)
            await session.rollback()
            raise
        finally:
            await session.close()


async def health_check_db(engine: Optional[AsyncEngine] = None) -> bool:
    """Fast health check against the central (or a given) engine"""
    try:
        async with (engine or get_central_engine()).connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return False


async def close_db_connections():
    """Properly close the central engine and every cached tenant engine"""
    global _central_engine, _central_session_factory
    from .tenant_registry import tenant_registry
    from ..services.notification_service import notification_dispatcher

    # In-flight notifications still write through tenant engines
    await notification_dispatcher.drain()
    await tenant_registry.dispose_all()
    if _central_engine is not None:
        await _central_engine.dispose()
        _central_engine = None
        _central_session_factory = None
    logger.info("Database connections closed")
