"""API Dependencies: authentication, roles and shared clients for route handlers.

Invariants:
    - get_current_user never returns None; every failure is AuthenticationError (401)
    - get_optional_user never raises for credential problems
    - Long-lived clients (provider gateway, webhook client) live on app.state, created in
      the lifespan; tests swap them through app.dependency_overrides
"""

import random

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hive.config import Settings, get_settings
from hive.core.errors import AuthenticationError, AuthorizationError, HiveError
from hive.core.domain_types import UserRole
from hive.infrastructure import database as db_module
from hive.infrastructure.database import get_db
from hive.infrastructure.llm_providers import ProviderGateway
from hive.infrastructure.webhook_client import WebhookClient
from hive.models.profile import Profile
from hive.services.agent_responder import SessionFactory
from hive.services.auth import decode_access_token, load_profile

bearer_scheme = HTTPBearer(auto_error=False)

_rng = random.Random()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Profile:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    user_id = decode_access_token(credentials.credentials, settings)
    return await load_profile(db, user_id)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Profile | None:
    if credentials is None or not credentials.credentials:
        return None
    try:
        user_id = decode_access_token(credentials.credentials, settings)
        return await load_profile(db, user_id)
    except HiveError:
        return None


async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    if user.role != UserRole.ADMIN.value:
        raise AuthorizationError()
    return user


def get_provider_gateway(request: Request) -> ProviderGateway:
    return request.app.state.provider_gateway


def get_webhook_client(request: Request) -> WebhookClient:
    return request.app.state.webhook_client


def get_rng() -> random.Random:
    return _rng


def get_session_factory() -> SessionFactory:
    """Opens sessions outside the request scope (streamed responses)."""
    if db_module.db_manager is None:
        raise RuntimeError("Database not initialized")
    return db_module.db_manager.session
