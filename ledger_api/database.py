"""
Database handle, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Database: owns the async engine (connection pool) and the session factory
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Lifecycle:
  There is no module-level engine. The application lifespan in main.py
  constructs one Database, stores it on app.state, and disposes of it on
  shutdown. Scripts (demo/seed.py) and tests build their own instance the
  same way, so nothing here depends on import-time configuration.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on any exception, then is closed — on every
  exit path.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class, which provides metadata tracking
    (used by create_all/drop_all) and the common declarative features.
    """
    pass


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLite ignores FOREIGN KEY clauses (including ON DELETE SET NULL)
    # unless this pragma is on for the connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Stop the driver from emitting its own deferred BEGIN; _begin_immediate
    # takes over.
    dbapi_connection.isolation_level = None


def _begin_immediate(conn) -> None:
    # Take the database write lock when the transaction starts, not at its
    # first write. Concurrent transactions then queue up (busy timeout)
    # instead of reading the same balance and failing with "database is
    # locked" when they try to upgrade.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _sqlite_file(url: str) -> Path | None:
    """Path of the database file for a file-backed SQLite URL, else None."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or parsed.database in (None, "", ":memory:"):
        return None
    return Path(parsed.database)


class Database:
    """
    The store handle: one engine plus the factory for its sessions.

    Args:
        url: SQLAlchemy async database URL.
        echo: Log every SQL statement (handy with DEBUG=true).
    """

    def __init__(self, url: str, echo: bool = False):
        sqlite_file = _sqlite_file(url)
        if sqlite_file is not None:
            sqlite_file.parent.mkdir(parents=True, exist_ok=True)

        self.engine: AsyncEngine = create_async_engine(url, echo=echo)

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self.engine.sync_engine, "begin", _begin_immediate)

        # expire_on_commit=False keeps attributes readable after commit.
        # Otherwise the returned Transaction would need a lazy reload,
        # which fails in async context.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create all tables that don't exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Scoped session: commit on success, roll back on any exception.

        Usage:
            async with database.session() as db:
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The Database instance comes from app.state (set by the lifespan), so
    the store handle is injected rather than imported as a global.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
