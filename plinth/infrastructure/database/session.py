"""Async database engine and session lifecycle management.

This module owns the single shared SQLAlchemy engine of the process. The
engine is wrapped in ``DatabaseModule``, the service module activated by the
database strategy when ``USE_DATABASE`` is enabled.

Core functionality:
- **Connection pooling**: Configurable pool with overflow and recycling
- **Session factory**: Async sessions committed on success, rolled back on error
- **Liveness probe**: ``SELECT 1`` on startup and for health checks
- **Pooler support**: Prepared statement cache disabled behind PgBouncer

Concurrent requests multiplex over the engine's own pool; nothing here holds
per-request state.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from plinth.core.config import DatabaseConfig
from plinth.core.exceptions import ConfigurationError

POOL_RECYCLE_SECONDS = 3600  # 1 hour
COMMAND_TIMEOUT_SECONDS = 60


def build_connect_args(config: DatabaseConfig) -> dict[str, Any]:
    """Driver arguments for asyncpg derived from the database slice.

    Args:
        config: Database configuration.

    Returns:
        dict[str, Any]: Keyword arguments passed to ``asyncpg.connect``.
    """
    connect_args: dict[str, Any] = {
        "server_settings": {"jit": "off"},
        "command_timeout": COMMAND_TIMEOUT_SECONDS,
    }
    if config.use_connection_pooler:
        # Transaction-mode poolers cannot keep prepared statements per connection
        connect_args["statement_cache_size"] = 0
    if config.ssl:
        connect_args["ssl"] = "require"
    return connect_args


def create_database_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine with connection pooling.

    No connection is opened until the engine is first used.

    Args:
        config: Database configuration.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    engine = create_async_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_pre_ping=True,
        pool_recycle=POOL_RECYCLE_SECONDS,
        echo=config.echo,
        # Bound values never appear in error text or tracebacks
        hide_parameters=True,
        connect_args=build_connect_args(config),
    )

    logger.info(
        "Created database engine - pool_size: {}, max_overflow: {}, pooler: {}",
        config.pool_size,
        config.max_overflow,
        config.use_connection_pooler,
    )
    return engine


class DatabaseModule:
    """Shared database handle activated when the database feature is on.

    Args:
        config: Database configuration.
        engine: Pre-built engine. Built from ``config`` when omitted.
    """

    name = "database"

    def __init__(self, config: DatabaseConfig, engine: AsyncEngine | None = None) -> None:
        self.config = config
        self.engine = engine or create_database_engine(config)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def start(self) -> None:
        """Verify connectivity before the application accepts requests.

        Raises:
            ConfigurationError: If the database cannot be reached.
        """
        is_healthy, error = await self.check()
        if not is_healthy:
            raise ConfigurationError(
                f"Database connection to {self.config.host}:{self.config.port} "
                f"failed: {error}"
            )
        logger.info("Database connection established")

    async def stop(self) -> None:
        """Dispose the engine and close pooled connections."""
        await self.engine.dispose()
        logger.info("Database engine disposed")

    async def check(self) -> tuple[bool, str | None]:
        """Run the ``SELECT 1`` liveness probe.

        Returns:
            tuple[bool, str | None]: Whether the probe succeeded and, if not,
                the error message.
        """
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                _ = result.scalar()
        except (SQLAlchemyError, OSError) as e:
            return False, str(e)
        else:
            return True, None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Get an async database session with automatic cleanup.

        The session is committed on success or rolled back on error.

        Yields:
            AsyncSession: Database session for performing operations.

        Example:
            async with module.session() as session:
                result = await session.execute(select(User))
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                logger.debug("Database session rolled back due to error")
                raise
