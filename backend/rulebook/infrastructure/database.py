"""Database Session Manager — async engine, sessions that roll back, StoreError mapping.

Invariants:
    - Every session rolls back on exception (no partial batch ever commits)
    - Every SQLAlchemy exception leaves as StoreError (core/errors.py); the driver
      message is logged, never returned
    - pool_pre_ping on every engine for stale connection detection

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
      (no global import side effects)
    - expire_on_commit=False: records are rebuilt from rows after commit, outside the session
    - SQLite URLs skip pool sizing (the aiosqlite pool does not accept it)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from rulebook.core.errors import StoreError

logger = logging.getLogger(__name__)

# First match wins: IntegrityError and OperationalError subclass DBAPIError.
_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def to_store_error(exc: SQLAlchemyError) -> StoreError:
    """Translate a SQLAlchemy exception into the store-level error."""
    for exc_type, message, operation in _FAILURES:
        if isinstance(exc, exc_type):
            return StoreError(message, operation)
    return StoreError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Owns one async engine and hands out sessions that translate failures."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **options)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that rolls back and raises StoreError on any SQLAlchemy failure."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = to_store_error(e)
            logger.error(
                "DB %s failed: %s", error.operation, e,
                extra={"error_code": error.code},
            )
            raise error from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness checks)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except StoreError as e:
            logger.error("DB health check failed: %s", e.message)
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager
