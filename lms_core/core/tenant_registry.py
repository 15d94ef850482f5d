# lms_core/core/tenant_registry.py
"""Process-wide registry of tenant database handles.

Every school owns an isolated database addressed as ``{base_uri}/{tenant_key}``.
The registry opens one engine per tenant key on first use and hands the same
:class:`TenantHandle` to every later caller for the lifetime of the process.

Concurrent first callers for the same key share a single in-flight creation:
the creation coroutine is memoized as a future in ``_pending`` and every caller
awaits it, so exactly one engine is ever built per key. A failed creation is
not cached; the next call starts a fresh attempt.
"""
import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, List, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .database import engine_options, make_session_factory
from .exceptions import TenantConfigurationError

logger = logging.getLogger(__name__)

EngineFactory = Callable[..., AsyncEngine]


@dataclass
class TenantHandle:
    """Live handle on one tenant database. Owned by the registry, never by callers."""
    tenant_key: str
    engine: AsyncEngine
    session_factory: async_sessionmaker = field(repr=False)

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


class TenantRegistry:
    def __init__(
        self,
        base_uri: Optional[str] = None,
        auto_create_schema: Optional[bool] = None,
        engine_factory: EngineFactory = create_async_engine,
    ):
        # None means "read from settings at call time"
        self._base_uri = base_uri
        self._auto_create_schema = auto_create_schema
        self._engine_factory = engine_factory
        self._handles: Dict[str, TenantHandle] = {}
        self._pending: Dict[str, "asyncio.Future[TenantHandle]"] = {}

    @property
    def base_uri(self) -> Optional[str]:
        base_uri = self._base_uri if self._base_uri is not None else settings.tenant_database_base_uri
        return base_uri.rstrip("/") if base_uri else None

    @property
    def auto_create_schema(self) -> bool:
        if self._auto_create_schema is None:
            return settings.tenant_auto_create_schema
        return self._auto_create_schema

    @property
    def cached_keys(self) -> List[str]:
        return sorted(self._handles)

    def build_url(self, tenant_key: str) -> str:
        base_uri = self.base_uri
        if not base_uri:
            raise TenantConfigurationError(
                "Tenant database base URI is not configured (TENANT_DATABASE_BASE_URI)"
            )
        if not tenant_key:
            raise TenantConfigurationError("Tenant key must not be empty")
        return f"{base_uri}/{tenant_key}"

    async def get_connection(self, tenant_key: str) -> TenantHandle:
        """Return the cached handle for ``tenant_key``, opening it on first use."""
        handle = self._handles.get(tenant_key)
        if handle is not None:
            return handle

        # Fail fast on configuration before scheduling any I/O
        url = self.build_url(tenant_key)

        pending = self._pending.get(tenant_key)
        if pending is None:
            pending = asyncio.ensure_future(self._open(tenant_key, url))
            pending.add_done_callback(self._retrieve_failure)
            self._pending[tenant_key] = pending
        # One caller giving up must not cancel the creation the others await
        return await asyncio.shield(pending)

    @staticmethod
    def _retrieve_failure(pending: "asyncio.Future[TenantHandle]") -> None:
        # Marks the error as seen when every awaiting caller was cancelled
        if not pending.cancelled():
            pending.exception()

    async def _open(self, tenant_key: str, url: str) -> TenantHandle:
        try:
            handle = await self._create_handle(tenant_key, url)
            self._handles[tenant_key] = handle
            return handle
        finally:
            self._pending.pop(tenant_key, None)

    async def _create_handle(self, tenant_key: str, url: str) -> TenantHandle:
        engine = self._engine_factory(
            url, **engine_options(url, f"{settings.app_name}_{tenant_key}")
        )
        self._register_observers(engine, tenant_key)
        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                if self.auto_create_schema:
                    from ..models.base import TenantBase
                    from .. import models  # noqa: F401  registers tenant tables

                    await conn.run_sync(TenantBase.metadata.create_all)
        except Exception:
            logger.error("[Tenant DB: %s] Failed to open connection", tenant_key, exc_info=True)
            await engine.dispose()
            raise

        logger.info("[Tenant DB: %s] Handle registered", tenant_key)
        return TenantHandle(
            tenant_key=tenant_key,
            engine=engine,
            session_factory=make_session_factory(engine),
        )

    @staticmethod
    def _register_observers(engine: AsyncEngine, tenant_key: str) -> None:
        sync_engine = engine.sync_engine

        @event.listens_for(sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            logger.info("[Tenant DB: %s] Connected", tenant_key)

        @event.listens_for(sync_engine, "close")
        def _on_close(dbapi_connection, connection_record):
            logger.info("[Tenant DB: %s] Disconnected", tenant_key)

        @event.listens_for(sync_engine, "handle_error")
        def _on_error(exception_context):
            logger.error(
                "[Tenant DB: %s] Connection error: %s",
                tenant_key, exception_context.original_exception,
            )

    async def dispose_all(self) -> None:
        """Dispose every cached engine. Only for process shutdown."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            await handle.engine.dispose()
            logger.info("[Tenant DB: %s] Disposed", handle.tenant_key)


tenant_registry = TenantRegistry()
