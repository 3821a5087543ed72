"""
PostgreSQL access for FixtureWatch: SQLAlchemy 2.0 async engine over asyncpg.

Holds verified_fixtures, team_aliases and the durable stats tier. Reads go
through read_session(); writes go through write_session(), one transaction that
commits on a clean exit and rolls back when the block raises.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import Settings, get_settings
from shared.models.orm import Base
from shared.utils.logging import get_logger

logger = get_logger(__name__)


def engine_options(settings: Settings) -> dict[str, Any]:
    """Pool sizing and asyncpg timeouts for create_async_engine."""
    return {
        "pool_size": settings.db_pool_min,
        "max_overflow": max(0, settings.db_pool_max - settings.db_pool_min),
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "echo": settings.debug,
        "connect_args": {
            "timeout": settings.db_command_timeout,
            "command_timeout": settings.db_command_timeout,
        },
    }


class DatabaseManager:
    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database is not connected; call connect() first")
        return self._engine

    def _session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            raise RuntimeError("database is not connected; call connect() first")
        return self._sessions

    async def connect(self) -> None:
        if self.connected:
            return
        self._engine = create_async_engine(self._settings.database_url_str, **engine_options(self._settings))
        self._sessions = async_sessionmaker(bind=self._engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("database_connected", url=self._settings.database_url_safe_log)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("database_disconnected")

    async def create_schema(self) -> None:
        """Create missing tables; existing ones are left alone."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_schema_ready", tables=sorted(Base.metadata.tables))

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory()() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory()() as session, session.begin():
            yield session
