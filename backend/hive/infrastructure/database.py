"""Database: async engine, request-scoped sessions and the readiness check.

Invariants:
    - A session that exits with an exception is rolled back before the error propagates
    - IntegrityError escaping a session becomes ConflictError (409); other SQLAlchemy
      errors become DatabaseError (503); HiveErrors pass through untouched
    - readiness() never raises: it reports healthy, degraded (slow or timed out) or unhealthy

Design Decisions:
    - Module-level db_manager set by init_db() in the app lifespan; cron jobs build their
      own engine via db/session.session_scope
    - expire_on_commit=False: ORM rows stay readable after commit in async code
    - SQLite URLs skip pool sizing (tests and local runs)
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from hive.core.errors import (
    ConflictError, DatabaseError, HiveError, OperationTimeoutError,
)
from hive.core.timeouts import with_timeout

logger = logging.getLogger(__name__)

READINESS_TIMEOUT_SECONDS = 5.0
READINESS_DEGRADED_MS = 1000

# First match wins; SQLAlchemyError is the catch-all
_ERROR_MESSAGES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def translate_db_error(exc: SQLAlchemyError) -> HiveError:
    if isinstance(exc, IntegrityError):
        return ConflictError("Resource conflicts with an existing record")
    for kind, message, operation in _ERROR_MESSAGES:
        if isinstance(exc, kind):
            return DatabaseError(message, operation)
    return DatabaseError(str(exc), "unknown")


@dataclass
class ReadinessResult:
    status: str
    latency_ms: int
    error: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"status": self.status, "latency_ms": self.latency_ms}
        if self.error:
            data["error"] = self.error
        return data


def _engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict:
    options: dict = {"pool_pre_ping": True}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600)
    return options


class DatabaseSessionManager:
    """Owns the engine and hands out sessions that roll back on failure."""

    def __init__(self, database_url: str, pool_size: int = 20, max_overflow: int = 10):
        self.engine = create_async_engine(
            database_url, **_engine_options(database_url, pool_size, max_overflow),
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
            logger.error(f"Database error ({type(e).__name__}): {e}")
            raise translate_db_error(e) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def readiness(
        self, timeout: float = READINESS_TIMEOUT_SECONDS, clock=time.perf_counter,
    ) -> ReadinessResult:
        """SELECT 1 with a deadline, classified for /health/ready."""
        start = clock()

        def elapsed() -> int:
            return int((clock() - start) * 1000)

        try:
            async with self.session() as db:
                await with_timeout(
                    db.execute(text("SELECT 1")), timeout,
                    "Database readiness check timed out",
                )
        except OperationTimeoutError:
            return ReadinessResult("degraded", elapsed(), "Query timeout")
        except (HiveError, OSError) as e:
            logger.error(f"Database readiness check failed: {e}")
            return ReadinessResult("unhealthy", elapsed(), str(e))

        latency = elapsed()
        status = "degraded" if latency > READINESS_DEGRADED_MS else "healthy"
        return ReadinessResult(status, latency)

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
