"""Rate Limiter: per-user bookkeeping over RateLimitEvent rows.

Invariants:
    - Minute windows start at the top of the current UTC minute; day windows at UTC midnight
    - consume() records an event only when the decision allows it
    - Totals (max_agents/max_swarms) count owned rows, not events
    - Plan limits: PlanRateLimit row when present, else DEFAULT_PLAN_LIMITS
    - Callers own the transaction: consume() flushes, the route commits

Design Decisions:
    - Counting events with SQL aggregates instead of Redis counters: one datastore, and
      the event log doubles as the admin usage history
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import RateLimitEventType, utcnow
from hive.core.errors import RateLimitExceededError
from hive.core.rate_limit_policy import (
    PlanLimits, RateLimitDecision, RateLimitUsage, UNLIMITED,
    build_rate_limit_headers, default_limits_for, evaluate,
    limits_with_overrides, seconds_until_midnight, seconds_until_next_minute,
)
from hive.core.stats import utc_day_bounds
from hive.models.agent import Agent
from hive.models.profile import Profile
from hive.models.rate_limit import PlanRateLimit, RateLimitEvent
from hive.models.swarm import Swarm

logger = logging.getLogger(__name__)

_LIMIT_FIELDS = (
    "messages_per_minute", "messages_per_day", "requests_per_minute",
    "requests_per_day", "tokens_per_day", "max_agents", "max_swarms",
    "agents_per_day", "swarms_per_day",
)
_REQUEST_TYPES = (RateLimitEventType.REQUEST.value, RateLimitEventType.AI_REQUEST.value)


class RateLimiter:
    """Evaluates and records rate-limited events for one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def limits_for_plan(self, plan: str | None) -> PlanLimits:
        base = default_limits_for(plan)
        row = await self.db.get(PlanRateLimit, base.plan)
        if row is None:
            return base
        return limits_with_overrides(
            base, **{name: getattr(row, name) for name in _LIMIT_FIELDS},
        )

    async def set_plan_limits(self, plan: str, **changes: int | None) -> PlanLimits:
        current = await self.limits_for_plan(plan)
        updated = limits_with_overrides(current, **changes)
        row = await self.db.get(PlanRateLimit, updated.plan)
        if row is None:
            row = PlanRateLimit(plan=updated.plan)
            self.db.add(row)
        for name in _LIMIT_FIELDS:
            setattr(row, name, getattr(updated, name))
        await self.db.commit()
        logger.info(f"Plan limits updated for {updated.plan}")
        return updated

    async def get_usage(self, user_id: uuid.UUID, now: datetime | None = None) -> RateLimitUsage:
        now = now or utcnow()
        minute_start = now.replace(second=0, microsecond=0)
        _, day_start, _ = utc_day_bounds(now)

        async def count(types: tuple[str, ...], since: datetime) -> int:
            result = await self.db.execute(
                select(func.count(RateLimitEvent.id)).where(
                    RateLimitEvent.user_id == user_id,
                    RateLimitEvent.event_type.in_(types),
                    RateLimitEvent.created_at >= since,
                ),
            )
            return result.scalar_one()

        tokens = await self.db.execute(
            select(func.coalesce(func.sum(RateLimitEvent.amount), 0)).where(
                RateLimitEvent.user_id == user_id,
                RateLimitEvent.event_type == RateLimitEventType.TOKENS.value,
                RateLimitEvent.created_at >= day_start,
            ),
        )
        total_agents = await self.db.execute(
            select(func.count(Agent.id)).where(Agent.user_id == user_id),
        )
        total_swarms = await self.db.execute(
            select(func.count(Swarm.id)).where(Swarm.user_id == user_id),
        )
        message = (RateLimitEventType.MESSAGE.value,)
        return RateLimitUsage(
            messages_per_minute=await count(message, minute_start),
            messages_today=await count(message, day_start),
            requests_per_minute=await count(_REQUEST_TYPES, minute_start),
            requests_today=await count(_REQUEST_TYPES, day_start),
            tokens_today=int(tokens.scalar_one()),
            agents_created_today=await count(
                (RateLimitEventType.AGENT_CREATE.value,), day_start,
            ),
            swarms_created_today=await count(
                (RateLimitEventType.SWARM_CREATE.value,), day_start,
            ),
            total_agents=total_agents.scalar_one(),
            total_swarms=total_swarms.scalar_one(),
        )

    async def check(
        self, user: Profile, event_type: str, amount: int = 1,
        now: datetime | None = None,
    ) -> RateLimitDecision:
        now = now or utcnow()
        usage = await self.get_usage(user.id, now)
        limits = await self.limits_for_plan(user.plan)
        decision = evaluate(event_type, usage, limits, now, amount)
        decision.headers = build_rate_limit_headers(
            decision, None if decision.allowed else decision.retry_after, now,
        )
        return decision

    async def consume(
        self, user: Profile, event_type: str, resource_id: str | None = None,
        amount: int = 1, now: datetime | None = None,
    ) -> RateLimitDecision:
        decision = await self.check(user, event_type, amount, now)
        if decision.allowed:
            self.db.add(RateLimitEvent(
                user_id=user.id, event_type=decision.event_type,
                resource_id=resource_id, amount=amount,
                created_at=now or utcnow(),
            ))
            await self.db.flush()
        else:
            logger.info(
                f"Rate limit hit: {event_type}",
                extra={"user_id": str(user.id), "event_type": event_type},
            )
        return decision

    async def enforce(
        self, user: Profile, event_type: str, resource_id: str | None = None,
        amount: int = 1, now: datetime | None = None,
    ) -> RateLimitDecision:
        """consume() that raises RateLimitExceededError when blocked."""
        decision = await self.consume(user, event_type, resource_id, amount, now)
        if not decision.allowed:
            raise exceeded_error(decision)
        return decision

    async def ensure_allowed(
        self, user: Profile, event_type: str, amount: int = 1, now: datetime | None = None,
    ) -> RateLimitDecision:
        """check() that raises when blocked; records nothing."""
        decision = await self.check(user, event_type, amount, now)
        if not decision.allowed:
            raise exceeded_error(decision)
        return decision

    def record(
        self, user_id: uuid.UUID, event_type: str, amount: int = 1,
        resource_id: str | None = None,
    ) -> None:
        """Record usage after the fact (e.g. tokens once a response is complete)."""
        self.db.add(RateLimitEvent(
            user_id=user_id, event_type=event_type, resource_id=resource_id, amount=amount,
        ))

    async def status(self, user: Profile, now: datetime | None = None) -> dict:
        now = now or utcnow()
        usage = await self.get_usage(user.id, now)
        limits = await self.limits_for_plan(user.plan)

        def window(used: int, limit: int) -> dict:
            return {
                "used": used,
                "limit": limit,
                "remaining": None if limit == UNLIMITED else max(0, limit - used),
            }

        return {
            "plan": limits.plan,
            "messages": {
                "per_minute": window(usage.messages_per_minute, limits.messages_per_minute),
                "per_day": window(usage.messages_today, limits.messages_per_day),
            },
            "requests": {
                "per_minute": window(usage.requests_per_minute, limits.requests_per_minute),
                "per_day": window(usage.requests_today, limits.requests_per_day),
            },
            "tokens": {"per_day": window(usage.tokens_today, limits.tokens_per_day)},
            "agents": {
                "total": window(usage.total_agents, limits.max_agents),
                "per_day": window(usage.agents_created_today, limits.agents_per_day),
            },
            "swarms": {
                "total": window(usage.total_swarms, limits.max_swarms),
                "per_day": window(usage.swarms_created_today, limits.swarms_per_day),
            },
            "reset": {
                "minute_seconds": seconds_until_next_minute(now),
                "day_seconds": seconds_until_midnight(now),
            },
        }


def exceeded_error(decision: RateLimitDecision) -> RateLimitExceededError:
    return RateLimitExceededError(
        decision.reason or "Rate limit exceeded",
        retry_after=decision.retry_after,
        event_type=decision.event_type,
        usage=decision.usage.to_dict(),
        limits=decision.limits.to_dict(),
        headers=decision.headers,
    )
