"""Agent Service: owner-scoped agent CRUD.

Invariants:
    - Agents are only visible to their owner (foreign agents -> 404, never 403)
    - create consumes an agent_create rate-limit event and queues agent.created
"""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import RateLimitEventType, WebhookEventType
from hive.core.errors import ResourceNotFoundError
from hive.models.agent import Agent
from hive.models.profile import Profile
from hive.models.swarm import SwarmAgent
from hive.schemas.agent import AgentCreate, AgentUpdate
from hive.services.rate_limiter import RateLimiter
from hive.services.webhook_dispatcher import emit_event

logger = logging.getLogger(__name__)


def _apply_tools(settings: dict | None, tools: list[str] | None) -> dict:
    merged = dict(settings or {})
    if tools is not None:
        merged["tools"] = tools
    return merged


class AgentService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_owned(self, agent_id: uuid.UUID, user: Profile) -> Agent:
        result = await self.db.execute(
            select(Agent).where(Agent.id == agent_id, Agent.user_id == user.id),
        )
        agent = result.scalar_one_or_none()
        if agent is None:
            raise ResourceNotFoundError("Agent", str(agent_id))
        return agent

    async def list_owned(self, user: Profile, limit: int = 50, offset: int = 0) -> list[Agent]:
        result = await self.db.execute(
            select(Agent)
            .where(Agent.user_id == user.id)
            .order_by(Agent.created_at.desc())
            .limit(limit)
            .offset(offset),
        )
        return list(result.scalars().all())

    async def create(self, user: Profile, body: AgentCreate) -> Agent:
        await RateLimiter(self.db).enforce(user, RateLimitEventType.AGENT_CREATE.value)
        agent = Agent(
            user_id=user.id,
            name=body.name,
            role=body.role,
            framework=body.framework,
            model=body.model,
            system_prompt=body.system_prompt,
            description=body.description,
            settings=_apply_tools(body.settings, body.tools),
        )
        self.db.add(agent)
        await self.db.flush()
        await emit_event(
            self.db, user.id, WebhookEventType.AGENT_CREATED.value, "agent", agent.id,
            {"name": agent.name, "framework": agent.framework},
        )
        await self.db.commit()
        await self.db.refresh(agent)
        logger.info("Agent created", extra={"agent_id": str(agent.id), "user_id": str(user.id)})
        return agent

    async def update(self, agent_id: uuid.UUID, user: Profile, body: AgentUpdate) -> Agent:
        agent = await self.get_owned(agent_id, user)
        changes = body.model_dump(exclude_unset=True)
        tools = changes.pop("tools", None)
        for name, value in changes.items():
            if name == "settings" and value is None:
                continue
            setattr(agent, name, value)
        if tools is not None:
            agent.settings = _apply_tools(agent.settings, tools)
        await self.db.commit()
        await self.db.refresh(agent)
        return agent

    async def delete(self, agent_id: uuid.UUID, user: Profile) -> None:
        agent = await self.get_owned(agent_id, user)
        await self.db.execute(delete(SwarmAgent).where(SwarmAgent.agent_id == agent.id))
        await self.db.delete(agent)
        await self.db.commit()
        logger.info("Agent deleted", extra={"agent_id": str(agent_id)})
