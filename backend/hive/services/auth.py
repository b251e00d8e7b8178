"""Auth: HS256 bearer tokens and profile lookup.

Invariants:
    - Tokens carry sub (profile id), aud, iat and exp; HS256 only
    - Every decode failure surfaces as AuthenticationError (never a PyJWT exception)
    - A valid token for a deleted profile is still unauthorized
"""

import uuid
from datetime import datetime, timedelta

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.config import Settings
from hive.core.domain_types import utcnow
from hive.core.errors import AuthenticationError
from hive.models.profile import Profile


def create_access_token(
    user_id: uuid.UUID | str,
    settings: Settings,
    expires_in: timedelta | None = None,
    now: datetime | None = None,
    **claims,
) -> str:
    issued = now or utcnow()
    expiry = issued + (expires_in or timedelta(minutes=settings.jwt_expiry_minutes))
    payload = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "iat": int(issued.timestamp()),
        "exp": int(expiry.timestamp()),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> uuid.UUID:
    """Return the profile id in `sub`, or raise AuthenticationError."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")
    try:
        return uuid.UUID(payload["sub"])
    except (ValueError, TypeError):
        raise AuthenticationError("Invalid token subject")


async def load_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise AuthenticationError("Unknown user")
    return profile
