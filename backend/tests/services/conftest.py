"""Service test fixtures: async DB, seeded profiles and a FastAPI test client.

Invariants:
    - Each test builds the schema on its own in-memory SQLite engine
    - get_db overridden to use the test session factory
    - db_manager patched for code that opens sessions outside the request
      (streamed agent replies)
    - Provider gateway and webhook client replaced through dependency_overrides;
      no test touches the network

Design Decisions:
    - SQLite in-memory via aiosqlite; no PostgreSQL-only features are exercised
    - FakeGateway records every call and replays scripted chunks or errors
    - Webhook receivers are httpx.MockTransport handlers so signatures can be asserted
"""

import random
from uuid import uuid4

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import hive.infrastructure.database as db_module
from hive.api.dependencies import get_provider_gateway, get_rng, get_webhook_client
from hive.config import get_settings
from hive.db.base import Base
import hive.models  # noqa: F401
from hive.infrastructure.database import DatabaseSessionManager, get_db
from hive.infrastructure.webhook_client import WebhookClient
from hive.main import app
from hive.models.profile import Profile
from hive.services.auth import create_access_token
from hive.services.stats import admin_cache


class FakeGateway:
    """Stands in for ProviderGateway: yields `chunks`, then raises `error` if set."""

    def __init__(self):
        self.chunks: list[str] = ["Hello", " from", " the swarm"]
        self.error: Exception | None = None
        self.error_after: int = 0
        self.calls: list[dict] = []

    async def stream_completion(self, **kwargs):
        self.calls.append(kwargs)
        for index, chunk in enumerate(self.chunks):
            if self.error is not None and index == self.error_after:
                raise self.error
            yield chunk
        if self.error is not None and self.error_after >= len(self.chunks):
            raise self.error

    async def aclose(self):
        pass


class WebhookReceiver:
    """Collects requests sent through the webhook client; replies with `status`."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text="ok" if self.status < 400 else "nope")


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def webhook_receiver():
    return WebhookReceiver()


@pytest.fixture
async def webhook_client(webhook_receiver):
    client = WebhookClient(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(webhook_receiver)),
    )
    yield client
    await client.aclose()


@pytest.fixture
async def client(test_engine, test_session_factory, fake_gateway, webhook_client):
    """FastAPI test client with DB and external clients overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_webhook_client] = lambda: webhook_client
    app.dependency_overrides[get_rng] = lambda: random.Random(7)

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager
    admin_cache.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    admin_cache.clear()


async def _profile(db, email: str, role: str = "user", plan: str = "free") -> Profile:
    profile = Profile(
        id=uuid4(), email=email, full_name=email.split("@")[0].title(), role=role, plan=plan,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


@pytest.fixture
async def user(test_db):
    return await _profile(test_db, "ada@example.com")


@pytest.fixture
async def other_user(test_db):
    return await _profile(test_db, "grace@example.com")


@pytest.fixture
async def admin(test_db):
    return await _profile(test_db, "root@example.com", role="admin", plan="enterprise")


def bearer(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(profile.id, get_settings())}"}


@pytest.fixture
def auth(user):
    return bearer(user)


@pytest.fixture
def other_auth(other_user):
    return bearer(other_user)


@pytest.fixture
def admin_auth(admin):
    return bearer(admin)
