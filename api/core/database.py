"""Async SQLAlchemy engine, sessions and database health checks.

PostgreSQL (asyncpg) is the production backend. SQLite (aiosqlite) is
accepted for local runs and tests; it gets a NullPool because every
aiosqlite connection is its own thread.

The engine and session factory are created in the application lifespan and
kept on ``app.state``; request handlers receive a session through ``DbSession``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Annotated, NamedTuple, TypedDict

from fastapi import Depends, Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, QueuePool

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DB_CONNECT_TIMEOUT_SECONDS = 30


class Base(DeclarativeBase):
    pass


class PoolStatus(NamedTuple):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int

    @classmethod
    def from_pool(cls, pool: QueuePool) -> PoolStatus:
        return cls(
            pool_size=pool.size(),
            checked_out=pool.checkedout(),
            overflow=pool.overflow(),
            checked_in=pool.checkedin(),
        )


class HealthCheckResult(TypedDict):
    database: bool
    pool: PoolStatus | None


def _warn_on_pool_overflow(engine: AsyncEngine) -> None:
    """Log a warning whenever a checkout has to dip into overflow connections."""
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return

    @event.listens_for(pool, "checkout")
    def _on_checkout(dbapi_conn, connection_record, connection_proxy):
        if pool.overflow() > 0:
            logger.warning(
                "db.pool.overflow",
                extra=PoolStatus.from_pool(pool)._asdict(),
            )


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()

    if settings.is_sqlite:
        return create_async_engine(
            settings.database_url, echo=settings.db_echo, poolclass=NullPool
        )

    engine = create_async_engine(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )
    _warn_on_pool_overflow(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession]:
    """One session per request: committed on success, rolled back on error.

    Repositories flush but never commit; the commit happens here after the
    handler returns.
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            try:
                await session.rollback()
            except Exception as rollback_err:
                logger.warning("db.rollback.failed", extra={"error": str(rollback_err)})
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def check_db_connection(engine: AsyncEngine) -> None:
    """Run ``SELECT 1``; raises on failure or after the connect timeout."""
    async with asyncio.timeout(DB_CONNECT_TIMEOUT_SECONDS):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


async def init_db(engine: AsyncEngine) -> None:
    logger.info("db.connectivity.verifying")
    await check_db_connection(engine)
    logger.info("db.connectivity.verified")


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db.tables.created")


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


def get_pool_status(engine: AsyncEngine) -> PoolStatus | None:
    """Pool counters, or None for pools that don't track them (SQLite)."""
    pool = engine.sync_engine.pool
    if isinstance(pool, QueuePool):
        return PoolStatus.from_pool(pool)
    return None


async def comprehensive_health_check(engine: AsyncEngine) -> HealthCheckResult:
    try:
        await check_db_connection(engine)
        database_ok = True
    except Exception:
        logger.warning("db.health_check.failed", exc_info=True)
        database_ok = False

    return {"database": database_ok, "pool": get_pool_status(engine)}
