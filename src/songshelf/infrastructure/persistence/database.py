"""Async engine and session handling for the song catalog."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from songshelf.config import Settings
from songshelf.config.settings import DatabaseSettings
from songshelf.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)

# Applied to every new SQLite connection. WAL lets the serving layer read the catalog while
# the scanner writes; NORMAL sync is safe under WAL and much faster for row-per-file inserts.
SQLITE_PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA synchronous=NORMAL")


def _engine_options(db: DatabaseSettings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
    if db.url.startswith("postgresql"):
        options.update(
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_timeout=db.pool_timeout,
            pool_recycle=db.pool_recycle,
        )
    elif db.url.startswith("sqlite"):
        # The driver-level timeout is the first line against "database is locked",
        # with_db_retry is the second.
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
    return options


class Database:
    """Owns the engine and hands out short transactional sessions."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine = create_async_engine(settings.database.url, **_engine_options(settings.database))
        if self.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", self._apply_sqlite_pragmas)

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def is_sqlite(self) -> bool:
        return self.settings.database.url.startswith("sqlite")

    @staticmethod
    def _apply_sqlite_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        try:
            for pragma in SQLITE_PRAGMAS:
                cursor.execute(pragma)
        finally:
            cursor.close()

    # Hey future me - keep these scopes SHORT. One scope per catalog statement (lookup,
    # insert, update) and never one around a whole scan pass: SQLite allows a single writer
    # and the serving layer must be able to write play counts in between two files.
    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on success and rolls back on any error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create missing tables (the songs table on a fresh catalog)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug(f"Catalog tables ready ({self.settings.database.url})")

    async def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        await self._engine.dispose()
