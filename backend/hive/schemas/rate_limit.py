"""Rate Limit Schemas: check requests and admin plan-limit edits."""

from typing import Literal

from pydantic import BaseModel, Field

EventTypeName = Literal[
    "message", "request", "ai_request", "agent_create", "swarm_create", "tokens",
]


class RateLimitCheckRequest(BaseModel):
    event_type: EventTypeName = "request"
    consume: bool = False
    resource_id: str | None = Field(None, max_length=64)
    amount: int = Field(1, ge=1)


class PlanLimitsUpdate(BaseModel):
    """Partial update; -1 means unlimited."""
    messages_per_minute: int | None = Field(None, ge=-1)
    messages_per_day: int | None = Field(None, ge=-1)
    requests_per_minute: int | None = Field(None, ge=-1)
    requests_per_day: int | None = Field(None, ge=-1)
    tokens_per_day: int | None = Field(None, ge=-1)
    max_agents: int | None = Field(None, ge=-1)
    max_swarms: int | None = Field(None, ge=-1)
    agents_per_day: int | None = Field(None, ge=-1)
    swarms_per_day: int | None = Field(None, ge=-1)
