from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from docrev.config import Settings, get_settings
from docrev.db.models import Base

logger = logging.getLogger(__name__)


def _sqlite_begin_immediate(engine: AsyncEngine) -> None:
    """Take the SQLite write lock when a transaction begins.

    With the driver's deferred BEGIN, a transaction holding a read lock that tries
    to upgrade while another writer is committing fails with "database is locked"
    without waiting. BEGIN IMMEDIATE makes concurrent writers queue on the busy
    timeout, so a losing compare-and-swap sees the winner's revision.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(settings: Settings) -> AsyncEngine:
    url = settings.DATABASE_URL
    common_kwargs = {
        "echo": settings.DEBUG,
    }

    # SQLite (especially aiosqlite) is not well-served by connection pooling.
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            poolclass=NullPool,
            connect_args={"timeout": settings.DB_SQLITE_BUSY_TIMEOUT_SECONDS},
            **common_kwargs,
        )
        _sqlite_begin_immediate(engine)
        return engine

    # Postgres/MySQL/etc: use pool settings to improve stability under load.
    backend = make_url(url).get_backend_name()
    db_kwargs = {}
    if backend in {"postgresql", "postgres"}:
        db_kwargs["isolation_level"] = settings.DB_POSTGRES_ISOLATION_LEVEL

    return create_async_engine(
        url,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        **db_kwargs,
        **common_kwargs,
    )


class Database:
    """Explicit handle on one database: engine plus session factory.

    Lifecycle is owned by the caller, either `await db.open()` / `await db.close()`
    or `async with Database(settings) as db:`. Nothing is created at import time.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def dialect_name(self) -> str:
        return make_url(self.settings.DATABASE_URL).get_backend_name()

    async def open(self) -> "Database":
        if self._engine is not None:
            return self

        self._engine = create_engine(self.settings)
        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("event=database.open backend=%s", self.dialect_name)

        if self.settings.DB_AUTO_CREATE_SCHEMA:
            await self.create_schema()
        return self

    async def close(self) -> None:
        if self._engine is None:
            return
        engine = self._engine
        self._engine = None
        self._sessionmaker = None
        await engine.dispose()
        logger.info("event=database.close backend=%s", self.dialect_name)

    async def __aenter__(self) -> "Database":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Scoped session acquisition; the session is closed on every exit path."""
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        async with self._sessionmaker() as session:
            yield session

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("event=database.create_schema backend=%s", self.dialect_name)

    async def drop_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
