"""Rate Limit Policy: pure evaluation of plan limits against current usage.

Invariants:
    - evaluate() never touches IO; usage is counted by services/rate_limiter.py
    - A limit of UNLIMITED (-1) disables that window
    - Minute windows retry at the next minute boundary, daily windows at the next UTC
      midnight, total caps (max_agents/max_swarms) after 60s
    - Checks run in a fixed order per event type; the first exhausted window wins

Design Decisions:
    - PlanLimits/RateLimitUsage as dataclasses with to_dict(): JSON keys match the wire
      format of /rate-limits/check (snake_case)
    - Built-in DEFAULT_PLAN_LIMITS: a PlanRateLimit row overrides a plan without migration
"""

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta, timezone

from hive.core.domain_types import Plan, RateLimitEventType

UNLIMITED = -1
MINUTE_WINDOW_SECONDS = 60
DAY_WINDOW_SECONDS = 86_400
TOTAL_CAP_RETRY_SECONDS = 60


@dataclass(frozen=True)
class PlanLimits:
    plan: str
    messages_per_minute: int
    messages_per_day: int
    requests_per_minute: int
    requests_per_day: int
    tokens_per_day: int
    max_agents: int
    max_swarms: int
    agents_per_day: int
    swarms_per_day: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RateLimitUsage:
    messages_per_minute: int = 0
    messages_today: int = 0
    requests_per_minute: int = 0
    requests_today: int = 0
    tokens_today: int = 0
    agents_created_today: int = 0
    swarms_created_today: int = 0
    total_agents: int = 0
    total_swarms: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RateLimitDecision:
    allowed: bool
    event_type: str
    usage: RateLimitUsage
    limits: PlanLimits
    reason: str | None = None
    retry_after: int = 0
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "retry_after": self.retry_after,
            "event_type": self.event_type,
            "usage": self.usage.to_dict(),
            "limits": self.limits.to_dict(),
        }


DEFAULT_PLAN_LIMITS: dict[str, PlanLimits] = {
    Plan.FREE.value: PlanLimits(
        plan="free", messages_per_minute=10, messages_per_day=100,
        requests_per_minute=20, requests_per_day=500, tokens_per_day=50_000,
        max_agents=3, max_swarms=3, agents_per_day=5, swarms_per_day=5,
    ),
    Plan.PRO.value: PlanLimits(
        plan="pro", messages_per_minute=60, messages_per_day=5_000,
        requests_per_minute=120, requests_per_day=20_000, tokens_per_day=1_000_000,
        max_agents=50, max_swarms=50, agents_per_day=50, swarms_per_day=50,
    ),
    Plan.UNLIMITED.value: PlanLimits(
        plan="unlimited", messages_per_minute=300, messages_per_day=UNLIMITED,
        requests_per_minute=600, requests_per_day=UNLIMITED, tokens_per_day=UNLIMITED,
        max_agents=UNLIMITED, max_swarms=UNLIMITED,
        agents_per_day=UNLIMITED, swarms_per_day=UNLIMITED,
    ),
    Plan.ENTERPRISE.value: PlanLimits(
        plan="enterprise", messages_per_minute=1_000, messages_per_day=UNLIMITED,
        requests_per_minute=2_000, requests_per_day=UNLIMITED, tokens_per_day=UNLIMITED,
        max_agents=UNLIMITED, max_swarms=UNLIMITED,
        agents_per_day=UNLIMITED, swarms_per_day=UNLIMITED,
    ),
}

RATE_LIMIT_MESSAGES = {
    RateLimitEventType.MESSAGE: (
        "You have sent too many messages. Please wait before sending more."
    ),
    RateLimitEventType.REQUEST: "Too many API requests. Please slow down.",
    RateLimitEventType.AI_REQUEST: "Too many API requests. Please slow down.",
    RateLimitEventType.AGENT_CREATE: (
        "You have created too many agents today. Please try again tomorrow."
    ),
    RateLimitEventType.SWARM_CREATE: (
        "You have created too many swarms today. Please try again tomorrow."
    ),
    RateLimitEventType.TOKENS: (
        "You have used your daily token allowance. Please try again tomorrow."
    ),
}
DEFAULT_RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


def default_limits_for(plan: str | None) -> PlanLimits:
    """Built-in limits for plan; unknown plans fall back to free."""
    return DEFAULT_PLAN_LIMITS.get(plan or "", DEFAULT_PLAN_LIMITS[Plan.FREE.value])


def limits_with_overrides(base: PlanLimits, **overrides: int) -> PlanLimits:
    return replace(base, **{k: v for k, v in overrides.items() if v is not None})


def get_rate_limit_message(event_type: str) -> str:
    try:
        return RATE_LIMIT_MESSAGES[RateLimitEventType(event_type)]
    except ValueError:
        return DEFAULT_RATE_LIMIT_MESSAGE


def seconds_until_next_minute(now: datetime) -> int:
    return MINUTE_WINDOW_SECONDS - now.second if now.second else MINUTE_WINDOW_SECONDS


def seconds_until_midnight(now: datetime) -> int:
    now = now.astimezone(timezone.utc)
    midnight = (now + timedelta(days=1)).replace(
        hour=0, minute=0, second=0, microsecond=0,
    )
    return max(1, math.ceil((midnight - now).total_seconds()))


def _exceeded(used: int, limit: int, amount: int = 1) -> bool:
    return limit != UNLIMITED and used + amount > limit


def evaluate(
    event_type: str,
    usage: RateLimitUsage,
    limits: PlanLimits,
    now: datetime,
    amount: int = 1,
) -> RateLimitDecision:
    """Decide whether one more event_type (of size amount) fits the plan."""
    kind = RateLimitEventType(event_type)
    minute = seconds_until_next_minute(now)
    day = seconds_until_midnight(now)

    checks: list[tuple[int, int, int, int]] = []  # (used, limit, amount, retry_after)
    if kind == RateLimitEventType.MESSAGE:
        checks = [
            (usage.messages_per_minute, limits.messages_per_minute, 1, minute),
            (usage.messages_today, limits.messages_per_day, 1, day),
        ]
    elif kind in (RateLimitEventType.REQUEST, RateLimitEventType.AI_REQUEST):
        checks = [
            (usage.requests_per_minute, limits.requests_per_minute, 1, minute),
            (usage.requests_today, limits.requests_per_day, 1, day),
        ]
    elif kind == RateLimitEventType.AGENT_CREATE:
        checks = [
            (usage.total_agents, limits.max_agents, 1, TOTAL_CAP_RETRY_SECONDS),
            (usage.agents_created_today, limits.agents_per_day, 1, day),
        ]
    elif kind == RateLimitEventType.SWARM_CREATE:
        checks = [
            (usage.total_swarms, limits.max_swarms, 1, TOTAL_CAP_RETRY_SECONDS),
            (usage.swarms_created_today, limits.swarms_per_day, 1, day),
        ]
    elif kind == RateLimitEventType.TOKENS:
        checks = [(usage.tokens_today, limits.tokens_per_day, amount, day)]

    for used, limit, size, retry_after in checks:
        if _exceeded(used, limit, size):
            return RateLimitDecision(
                allowed=False, event_type=kind.value, usage=usage, limits=limits,
                reason=get_rate_limit_message(kind.value), retry_after=retry_after,
            )
    return RateLimitDecision(
        allowed=True, event_type=kind.value, usage=usage, limits=limits,
    )


def build_rate_limit_headers(
    decision: RateLimitDecision,
    retry_after: int | None = None,
    now: datetime | None = None,
) -> dict[str, str]:
    limits, usage = decision.limits, decision.usage
    window: tuple[int, int, int] | None = None  # (limit, used, seconds)
    if decision.event_type == RateLimitEventType.MESSAGE.value:
        window = (limits.messages_per_minute, usage.messages_per_minute, MINUTE_WINDOW_SECONDS)
    elif decision.event_type in (
        RateLimitEventType.REQUEST.value, RateLimitEventType.AI_REQUEST.value,
    ):
        window = (limits.requests_per_minute, usage.requests_per_minute, MINUTE_WINDOW_SECONDS)
    elif decision.event_type == RateLimitEventType.AGENT_CREATE.value:
        window = (limits.agents_per_day, usage.agents_created_today, DAY_WINDOW_SECONDS)
    elif decision.event_type == RateLimitEventType.SWARM_CREATE.value:
        window = (limits.swarms_per_day, usage.swarms_created_today, DAY_WINDOW_SECONDS)

    headers: dict[str, str] = {}
    if window is not None:
        limit, used, seconds = window
        headers["X-RateLimit-Limit"] = str(limit)
        remaining = "unlimited" if limit == UNLIMITED else str(max(0, limit - used))
        headers["X-RateLimit-Remaining"] = remaining
        headers["X-RateLimit-Window"] = str(seconds)

    if retry_after is not None and retry_after > 0:
        now = now or datetime.now(timezone.utc)
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Reset"] = (
            now + timedelta(seconds=retry_after)
        ).isoformat()
    return headers


def format_time_remaining(seconds: float) -> str:
    if seconds < 60:
        return f"{math.ceil(seconds)}s"
    minutes = int(seconds // 60)
    remaining_seconds = math.ceil(seconds % 60)
    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s" if remaining_seconds > 0 else f"{minutes}m"
    hours = minutes // 60
    remaining_minutes = minutes % 60
    return f"{hours}h {remaining_minutes}m" if remaining_minutes > 0 else f"{hours}h"
