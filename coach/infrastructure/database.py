"""Participation Log Database: async engine and sessions for the participation_log store.

Invariants:
    - A session that raises is rolled back and closed; nothing half-written is committed
    - SQLAlchemy failures leave this module only as DatabaseError, which the
      repository turns into PersistenceFailureError
    - db_manager is set by init_db() in the lifespan; health probes read it from here
    - SQLite URLs (tests) get a plain engine without pool sizing
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from coach.core.errors import DatabaseError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors.
_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "participation record violates a constraint", "commit"),
    (OperationalError, "database unreachable", "execute"),
    (DBAPIError, "database driver error", "query"),
    (SQLAlchemyError, "database operation failed", "unknown"),
)


class DatabaseSessionManager:
    """Engine plus session factory. Pass `engine` to reuse one built elsewhere."""

    def __init__(
        self,
        database_url: str | None = None,
        pool_size: int = 20,
        max_overflow: int = 10,
        engine: AsyncEngine | None = None,
    ):
        if engine is None:
            if database_url is None:
                raise ValueError("database_url or engine is required")
            engine = _create_engine(database_url, pool_size, max_overflow)
        self.engine = engine
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            message, operation = _describe(e)
            logger.error(f"Participation log {operation} failed: {e}")
            raise DatabaseError(message, operation) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query succeeds."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    async def close(self) -> None:
        await self.engine.dispose()


def _describe(error: SQLAlchemyError) -> tuple[str, str]:
    for kind, message, operation in _FAILURES:
        if isinstance(error, kind):
            return message, operation
    return "database operation failed", "unknown"


def _create_engine(database_url: str, pool_size: int, max_overflow: int) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager
