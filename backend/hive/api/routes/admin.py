"""Admin Routes: platform statistics, plan limits and the webhook dispatch trigger.

Invariants:
    - Every route requires role == admin (403 otherwise)
    - Cached stats answer with Cache-Control max-age=30; no_cache answers no-store
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_webhook_client, require_admin
from hive.infrastructure.database import get_db
from hive.infrastructure.webhook_client import WebhookClient
from hive.models.profile import Profile
from hive.schemas.rate_limit import PlanLimitsUpdate
from hive.schemas.webhook import DispatchRequest
from hive.services.rate_limiter import RateLimiter
from hive.services.stats import AdminStats
from hive.services.webhook_dispatcher import WebhookDispatcher

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/stats")
async def admin_stats(
    response: Response,
    action: str = Query("all"),
    no_cache: bool = Query(False),
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await AdminStats(db).get(action, no_cache)
    response.headers["Cache-Control"] = "no-store" if no_cache else "private, max-age=30"
    return data


@router.get("/rate-limits/{plan}")
async def get_plan_limits(
    plan: str,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    limits = await RateLimiter(db).limits_for_plan(plan)
    return limits.to_dict()


@router.put("/rate-limits/{plan}")
async def update_plan_limits(
    plan: str,
    body: PlanLimitsUpdate,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    limits = await RateLimiter(db).set_plan_limits(plan, **body.model_dump(exclude_none=True))
    return limits.to_dict()


@router.post("/webhooks/dispatch")
async def dispatch_webhooks(
    body: DispatchRequest,
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    client: WebhookClient = Depends(get_webhook_client),
):
    """Process due events now (mode=process) or retry one event (mode=single)."""
    dispatcher = WebhookDispatcher(db, client)
    if body.mode == "single":
        return await dispatcher.process_single(body.event_id)
    return await dispatcher.process_pending(body.limit)
