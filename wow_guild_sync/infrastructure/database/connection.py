"""
Database Connection

Async SQLAlchemy engine plus a per-operation session helper. Repositories
open one short session per call so that progress increments from concurrent
batches never share a transaction.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    AsyncEngine,
    async_sessionmaker
)

from ...core.exceptions import ServiceError
from ...core.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE without this pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseConnection:
    """Owns the engine and hands out sessions."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 0
    ):
        self.database_url = database_url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _engine_options(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {"connect_args": {"timeout": 30}}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }

    async def initialize(self) -> None:
        """Create the engine and verify the database answers."""
        self._engine = create_async_engine(
            self.database_url, echo=self.echo, **self._engine_options()
        )
        if self.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise ServiceError(
                f"Database initialization failed: {e}",
                service_name="DatabaseConnection",
                operation="initialize"
            )

        logger.info(f"Database connection initialized ({self._engine.dialect.name})")

    async def create_tables(self) -> None:
        """Create the guild, member, sync job and sync error tables if missing."""
        if not self._engine:
            raise RuntimeError("Database not initialized")

        # Registers the mapped classes on Base.metadata
        from ...domain.guild.models import Guild, GuildMember  # noqa: F401
        from ...domain.sync.models import SyncJob, SyncError  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready")

    async def shutdown(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection shutdown")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on clean exit and rolls back on error."""
        if not self._session_factory:
            raise RuntimeError("Database not initialized")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        if not self._engine:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return False
