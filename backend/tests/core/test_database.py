"""Database layer: error translation, rollback scope, readiness check."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from hive.core.errors import (
    ConflictError, DatabaseError, OperationTimeoutError, ResourceNotFoundError,
)
from hive.infrastructure import database
from hive.infrastructure.database import DatabaseSessionManager, translate_db_error


@pytest.fixture
async def manager():
    m = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    yield m
    await m.dispose()


def test_integrity_error_becomes_conflict():
    err = translate_db_error(IntegrityError("INSERT", {}, Exception("dup")))
    assert isinstance(err, ConflictError)
    assert err.http_status == 409


def test_operational_error_becomes_database_error():
    err = translate_db_error(OperationalError("SELECT", {}, Exception("gone")))
    assert isinstance(err, DatabaseError)
    assert err.operation == "execute"
    assert err.http_status == 503


async def test_session_translates_sqlalchemy_errors(manager):
    with pytest.raises(ConflictError):
        async with manager.session():
            raise IntegrityError("INSERT", {}, Exception("dup"))


async def test_session_passes_domain_errors_through(manager):
    with pytest.raises(ResourceNotFoundError):
        async with manager.session():
            raise ResourceNotFoundError("Swarm", "abc")


async def test_session_rolls_back_on_error(manager):
    async with manager.session() as db:
        await db.execute(text("CREATE TABLE notes (body TEXT)"))
        await db.commit()

    with pytest.raises(ValueError):
        async with manager.session() as db:
            await db.execute(text("INSERT INTO notes VALUES ('draft')"))
            raise ValueError("boom")

    async with manager.session() as db:
        count = (await db.execute(text("SELECT COUNT(*) FROM notes"))).scalar()
    assert count == 0


async def test_readiness_reports_healthy(manager):
    result = await manager.readiness()
    assert result.status == "healthy"
    assert result.latency_ms >= 0
    assert "error" not in result.to_dict()


async def test_readiness_reports_unhealthy_when_database_is_unreachable(tmp_path):
    missing = tmp_path / "no-such-dir" / "hive.db"
    unreachable = DatabaseSessionManager(f"sqlite+aiosqlite:///{missing}")
    try:
        result = await unreachable.readiness()
    finally:
        await unreachable.dispose()
    assert result.status == "unhealthy"
    assert result.error


async def test_readiness_reports_degraded_when_slow(manager):
    ticks = iter([0.0, 1.5])
    result = await manager.readiness(clock=lambda: next(ticks))
    assert result.status == "degraded"
    assert result.latency_ms == 1500
    assert "error" not in result.to_dict()


async def test_readiness_reports_degraded_on_timeout(manager, monkeypatch):
    async def expired(awaitable, seconds, message="Operation timed out"):
        awaitable.close()
        raise OperationTimeoutError(message, timeout_seconds=seconds)

    monkeypatch.setattr(database, "with_timeout", expired)
    result = await manager.readiness(timeout=0.01)
    assert result.to_dict()["status"] == "degraded"
    assert result.error == "Query timeout"
