"""Database Session Manager — async engine, per-request sessions and error translation.

Invariants:
    - A session that raises is rolled back before the error leaves the context
    - Unique/FK violations become ConflictError (409); other SQLAlchemy
      failures become DatabaseError (503) tagged with the failing stage
    - expire_on_commit=False so rows stay readable after commit in handlers
      and background tasks
    - db_manager is the process-wide instance; background tasks open their
      own sessions from it
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from papermark.core.errors import ConflictError, DatabaseError, PapermarkError

logger = logging.getLogger(__name__)

# Checked in order; IntegrityError and OperationalError subclass DBAPIError.
_DB_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (OperationalError, "Database unavailable", "connect"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "orm"),
)


def _engine_kwargs(database_url: str, pool_size: int, max_overflow: int) -> dict:
    """SQLite (tests, local dev) has no sized pool; PostgreSQL does."""
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def translate_db_error(exc: SQLAlchemyError) -> PapermarkError:
    if isinstance(exc, IntegrityError):
        logger.warning(f"Constraint violated: {exc.orig}")
        return ConflictError("Resource already exists or violates a constraint")
    for failure_type, message, stage in _DB_FAILURES:
        if isinstance(exc, failure_type):
            logger.error(f"{message}: {exc}", extra={"error_code": "DATABASE_ERROR"})
            return DatabaseError(message, stage)
    return DatabaseError("Database operation failed", "orm")


class DatabaseSessionManager:

    def __init__(self, database_url: str, pool_size: int = 20, max_overflow: int = 10):
        self.engine = create_async_engine(
            database_url, **_engine_kwargs(database_url, pool_size, max_overflow),
        )
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
            raise translate_db_error(e) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def ping(self) -> float | None:
        """Round-trip time of SELECT 1 in milliseconds, or None when unreachable."""
        started = time.perf_counter()
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except (PapermarkError, OSError) as e:
            logger.error(f"Database ping failed: {e}", extra={"error_code": "DATABASE_ERROR"})
            return None
        return round((time.perf_counter() - started) * 1000, 2)

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    logger.info("Database engine created", extra={"event": "db_init"})
    return db_manager


async def close_db() -> None:
    global db_manager
    if db_manager is not None:
        await db_manager.dispose()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise DatabaseError("Database not initialized", "startup")
    async with db_manager.session() as session:
        yield session
