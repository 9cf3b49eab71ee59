"""Async SQLAlchemy engine and request-scoped sessions.

Production runs on PostgreSQL through asyncpg. SQLite through aiosqlite is
accepted for local development and the test suite; it needs the savepoint
hook below because issuance relies on ``session.begin_nested()``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from typing import Annotated, Any, NamedTuple

from fastapi import Depends, Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import QueuePool

from core.config import Settings, get_settings
from core.logger import get_logger

logger = get_logger(__name__)

CONNECT_TIMEOUT_SECONDS = 30


class Base(DeclarativeBase):
    pass


class PoolStatus(NamedTuple):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DatabaseProbe(NamedTuple):
    """Outcome of :func:`probe_database`."""

    reachable: bool
    pool: PoolStatus | None


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Make SQLAlchemy emit BEGIN itself on SQLite connections.

    pysqlite opens transactions lazily on the first DML statement, so a
    SAVEPOINT issued before that has nothing to nest in. Turning off the
    driver's own handling and emitting BEGIN on the engine's ``begin`` event
    is the recipe from the SQLAlchemy SQLite dialect documentation.
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _autocommit_driver(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _explicit_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def _warn_on_pool_overflow(engine: AsyncEngine) -> None:
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return

    @event.listens_for(pool, "checkout")
    def _on_checkout(_dbapi_conn: Any, _record: Any, _proxy: Any) -> None:
        if pool.overflow() > 0:
            logger.warning(
                "db.pool.overflow",
                db_pool_size=pool.size(),
                db_pool_checked_out=pool.checkedout(),
                db_pool_overflow_count=pool.overflow(),
            )


def _postgres_engine(settings: Settings) -> AsyncEngine:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {
                "statement_timeout": str(settings.db_statement_timeout_ms),
                "application_name": "dogmania-certification",
            }
        },
    )
    _warn_on_pool_overflow(engine)
    return engine


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Build the engine for ``DATABASE_URL``."""
    settings = settings or get_settings()
    if not settings.uses_sqlite:
        return _postgres_engine(settings)

    engine = create_async_engine(settings.database_url, echo=settings.db_echo)
    enable_sqlite_savepoints(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Issuance re-reads rows explicitly, so committed objects stay usable.
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession]:
    """One session per request, committed when the handler returns normally.

    Handlers and services only ever ``flush()``; any exception escaping the
    handler rolls the whole request back.
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
        except Exception:
            try:
                await session.rollback()
            except Exception as rollback_err:
                logger.warning("db.rollback.failed", error=str(rollback_err))
            raise
        await session.commit()


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def check_db_connection(engine: AsyncEngine) -> None:
    """Run ``SELECT 1``; raises on failure or after the connect timeout."""
    async with asyncio.timeout(CONNECT_TIMEOUT_SECONDS):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


async def init_db(engine: AsyncEngine) -> None:
    """Startup connectivity check. The schema itself is owned by alembic."""
    await check_db_connection(engine)
    logger.info("db.connectivity.verified", dialect=engine.dialect.name)


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


def get_pool_status(engine: AsyncEngine) -> PoolStatus | None:
    """Pool counters, or None for pools without them (SQLite)."""
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return None
    return PoolStatus(
        pool_size=pool.size(),
        checked_out=pool.checkedout(),
        overflow=pool.overflow(),
        checked_in=pool.checkedin(),
    )


async def probe_database(engine: AsyncEngine) -> DatabaseProbe:
    """Connectivity plus pool counters; never raises."""
    try:
        await check_db_connection(engine)
    except Exception as e:
        logger.warning("db.probe.failed", error=str(e))
        reachable = False
    else:
        reachable = True
    return DatabaseProbe(reachable=reachable, pool=get_pool_status(engine))
