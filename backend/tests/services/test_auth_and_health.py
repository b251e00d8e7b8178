"""Auth and health: bearer token handling on protected routes, liveness and readiness."""

from datetime import timedelta
from uuid import uuid4

from hive.infrastructure import database as db_module
from hive.infrastructure.database import ReadinessResult
from hive.services.auth import create_access_token


async def test_health_is_public(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.headers["X-Request-Id"].startswith("req_")


async def test_ready_checks_database(client):
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"
    db = res.json()["services"]["database"]
    assert db["status"] == "healthy"
    assert db["latency_ms"] >= 0
    assert res.json()["version"] == "1.0.0"


async def test_ready_is_503_when_database_unhealthy(client, monkeypatch):
    async def down(*args, **kwargs):
        return ReadinessResult("unhealthy", 4, "unable to open database file")

    monkeypatch.setattr(db_module.db_manager, "readiness", down)
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 503
    body = res.json()
    assert body["status"] == "unhealthy"
    assert body["services"]["database"] == {
        "status": "unhealthy", "latency_ms": 4, "error": "unable to open database file",
    }


async def test_ready_stays_200_when_database_degraded(client, monkeypatch):
    async def slow(*args, **kwargs):
        return ReadinessResult("degraded", 1500)

    monkeypatch.setattr(db_module.db_manager, "readiness", slow)
    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["status"] == "degraded"
    assert res.json()["checks"]["database"] == "degraded"


async def test_request_id_is_echoed(client):
    res = await client.get("/api/v1/health/", headers={"X-Request-Id": "req_custom"})
    assert res.headers["X-Request-Id"] == "req_custom"


async def test_missing_token_is_401(client):
    res = await client.get("/api/v1/agents")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "AUTH_ERROR"


async def test_garbage_token_is_401(client):
    res = await client.get("/api/v1/agents", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid token"


async def test_expired_token_is_401(client, user, settings):
    token = create_access_token(user.id, settings, expires_in=timedelta(seconds=-5))
    res = await client.get("/api/v1/agents", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Token expired"


async def test_token_for_unknown_profile_is_401(client, settings):
    token = create_access_token(uuid4(), settings)
    res = await client.get("/api/v1/agents", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Unknown user"


async def test_non_admin_cannot_reach_admin_routes(client, auth):
    res = await client.get("/api/v1/admin/stats", headers=auth)
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN"
