"""Rate Limit Routes: let clients check (and optionally consume) their quotas.

Invariants:
    - A blocked check answers 429 with Retry-After and X-RateLimit-* headers
    - consume=false never records an event
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.rate_limit import EventTypeName, RateLimitCheckRequest
from hive.services.rate_limiter import RateLimiter, exceeded_error

router = APIRouter(prefix="/api/v1/rate-limits", tags=["rate-limits"])


async def _check(
    body: RateLimitCheckRequest, user: Profile, db: AsyncSession, response: Response,
) -> dict:
    limiter = RateLimiter(db)
    if body.consume:
        decision = await limiter.consume(user, body.event_type, body.resource_id, body.amount)
        await db.commit()
    else:
        decision = await limiter.check(user, body.event_type, body.amount)
    if not decision.allowed:
        raise exceeded_error(decision)
    response.headers.update(decision.headers)
    return {
        "allowed": True,
        "event_type": decision.event_type,
        "usage": decision.usage.to_dict(),
        "limits": decision.limits.to_dict(),
    }


@router.post("/check")
async def check_rate_limit(
    body: RateLimitCheckRequest,
    response: Response,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _check(body, user, db, response)


@router.get("/check")
async def check_rate_limit_query(
    response: Response,
    event_type: EventTypeName = Query("request"),
    consume: bool = Query(False),
    resource_id: str | None = Query(None, max_length=64),
    amount: int = Query(1, ge=1),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    body = RateLimitCheckRequest(
        event_type=event_type, consume=consume, resource_id=resource_id, amount=amount,
    )
    return await _check(body, user, db, response)


@router.get("/status")
async def rate_limit_status(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RateLimiter(db).status(user)
