"""Stats Service: per-user dashboard numbers and platform-wide admin statistics.

Invariants:
    - Dashboard counts are scoped to the caller's swarms, agents and integrations
    - "Today" is the current UTC day; trends compare against the previous UTC day
    - Admin sections except `recent` are served from admin_cache
      (stats/messages: CacheTTL.SHORT, others: CacheTTL.MEDIUM) unless no_cache is set
    - Every admin section query is bounded by Timeouts.DATABASE

Design Decisions:
    - Process-local MemoryCache: admin stats tolerate per-worker staleness and a miss
      only costs a few aggregate queries
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import ensure_utc, utcnow
from hive.core.errors import InputValidationError
from hive.core.stats import (
    bucket_by_day, bucket_by_month, calculate_percentage_change, month_keys, utc_day_bounds,
)
from hive.core.timeouts import Timeouts, with_timeout
from hive.core.ttl_cache import CacheTTL, MemoryCache, with_cache
from hive.models.agent import Agent
from hive.models.ai_usage import AIUsage
from hive.models.integration import Integration
from hive.models.message import Message
from hive.models.profile import Profile
from hive.models.swarm import Swarm

logger = logging.getLogger(__name__)

admin_cache = MemoryCache(max_size=100)

ADMIN_SECTIONS = ("stats", "growth", "frameworks", "recent", "messages", "plans")
_SECTION_TTL = {
    "stats": CacheTTL.SHORT,
    "messages": CacheTTL.SHORT,
    "growth": CacheTTL.MEDIUM,
    "frameworks": CacheTTL.MEDIUM,
    "plans": CacheTTL.MEDIUM,
}


class DashboardStats:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, query) -> int:
        result = await self.db.execute(query)
        return result.scalar_one()

    async def for_user(self, user_id: uuid.UUID, now: datetime | None = None) -> dict:
        yesterday, today, tomorrow = utc_day_bounds(now or utcnow())
        own_swarms = select(Swarm.id).where(Swarm.user_id == user_id).scalar_subquery()

        def messages_between(start: datetime, end: datetime):
            return select(func.count(Message.id)).where(
                Message.swarm_id.in_(own_swarms),
                Message.created_at >= start,
                Message.created_at < end,
            )

        messages_today = await self._count(messages_between(today, tomorrow))
        messages_yesterday = await self._count(messages_between(yesterday, today))
        return {
            "active_swarms": await self._count(
                select(func.count(Swarm.id)).where(
                    Swarm.user_id == user_id, Swarm.status == "active",
                ),
            ),
            "total_agents": await self._count(
                select(func.count(Agent.id)).where(Agent.user_id == user_id),
            ),
            "messages_today": messages_today,
            "integrations": await self._count(
                select(func.count(Integration.id)).where(
                    Integration.user_id == user_id, Integration.is_active.is_(True),
                ),
            ),
            "trends": {
                "messages": calculate_percentage_change(messages_yesterday, messages_today),
            },
        }


class AdminStats:
    """Platform-wide sections for the admin dashboard."""

    def __init__(self, db: AsyncSession, cache: MemoryCache = admin_cache):
        self.db = db
        self.cache = cache

    async def get(self, action: str = "all", no_cache: bool = False,
                  now: datetime | None = None) -> dict:
        if action != "all" and action not in ADMIN_SECTIONS:
            raise InputValidationError(
                f"Unknown action: {action}", field="action",
                details={"action": f"must be one of: all, {', '.join(ADMIN_SECTIONS)}"},
            )
        now = now or utcnow()
        sections = ADMIN_SECTIONS if action == "all" else (action,)
        return {name: await self._section(name, no_cache, now) for name in sections}

    async def _section(self, name: str, no_cache: bool, now: datetime):
        loader = getattr(self, f"_load_{name}")

        async def load():
            return await with_timeout(
                loader(now), Timeouts.DATABASE, f"Admin stats '{name}' query timed out",
            )

        if name == "recent" or no_cache:
            return await load()
        return await with_cache(self.cache, f"admin:{name}", _SECTION_TTL[name], load)

    async def _scalar(self, query) -> int:
        result = await self.db.execute(query)
        return result.scalar_one()

    async def _load_stats(self, now: datetime) -> dict:
        _, today, tomorrow = utc_day_bounds(now)
        return {
            "total_users": await self._scalar(select(func.count(Profile.id))),
            "total_swarms": await self._scalar(select(func.count(Swarm.id))),
            "active_swarms": await self._scalar(
                select(func.count(Swarm.id)).where(Swarm.status == "active"),
            ),
            "total_agents": await self._scalar(select(func.count(Agent.id))),
            "total_messages": await self._scalar(select(func.count(Message.id))),
            "messages_today": await self._scalar(
                select(func.count(Message.id)).where(
                    Message.created_at >= today, Message.created_at < tomorrow,
                ),
            ),
            "ai_requests": await self._scalar(select(func.count(AIUsage.id))),
            "ai_cost": round(float(await self._scalar(
                select(func.coalesce(
                    func.sum(AIUsage.input_cost + AIUsage.output_cost), 0.0,
                )),
            )), 6),
        }

    async def _load_growth(self, now: datetime) -> list[dict]:
        oldest = month_keys(now, 6)[0]
        since = datetime.strptime(oldest, "%Y-%m").replace(tzinfo=now.tzinfo)
        result = await self.db.execute(
            select(Profile.created_at).where(Profile.created_at >= since),
        )
        return bucket_by_month([ensure_utc(ts) for ts in result.scalars().all()], now, 6)

    async def _load_frameworks(self, now: datetime) -> list[dict]:
        result = await self.db.execute(
            select(Agent.framework, func.count(Agent.id))
            .group_by(Agent.framework)
            .order_by(func.count(Agent.id).desc(), Agent.framework),
        )
        return [{"framework": fw, "count": count} for fw, count in result.all()]

    async def _load_recent(self, now: datetime) -> list[dict]:
        result = await self.db.execute(
            select(Profile).order_by(Profile.created_at.desc()).limit(10),
        )
        return [
            {
                "id": str(p.id),
                "email": p.email,
                "full_name": p.full_name,
                "plan": p.plan,
                "created_at": ensure_utc(p.created_at).isoformat(),
            }
            for p in result.scalars().all()
        ]

    async def _load_messages(self, now: datetime) -> list[dict]:
        _, today, _ = utc_day_bounds(now)
        result = await self.db.execute(
            select(Message.created_at).where(
                Message.created_at >= today - timedelta(days=29),
            ),
        )
        return bucket_by_day([ensure_utc(ts) for ts in result.scalars().all()], now, 30)

    async def _load_plans(self, now: datetime) -> dict[str, int]:
        result = await self.db.execute(
            select(Profile.plan, func.count(Profile.id)).group_by(Profile.plan),
        )
        return {plan: count for plan, count in result.all()}
