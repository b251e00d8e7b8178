"""Swarm Service: swarm CRUD, access checks and agent membership.

Invariants:
    - Readable by the owner, or by any signed-in user when visibility is public
    - Writable (update, delete, membership, context) only by the owner
    - Slugs are unique per owner: generate_unique_slug against the owner's existing slugs
    - Deleting a swarm removes its messages, context blocks, presence and memberships

Design Decisions:
    - Hidden swarms answer 404 rather than 403: existence is not leaked across tenants
"""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import RateLimitEventType, WebhookEventType
from hive.core.errors import ConflictError, ResourceNotFoundError
from hive.core.slug import generate_slug, generate_unique_slug
from hive.models.agent import Agent
from hive.models.context_block import ContextBlock
from hive.models.message import Message
from hive.models.presence import SwarmPresence
from hive.models.profile import Profile
from hive.models.swarm import Swarm, SwarmAgent
from hive.schemas.swarm import SwarmCreate, SwarmUpdate
from hive.services.rate_limiter import RateLimiter
from hive.services.webhook_dispatcher import emit_event

logger = logging.getLogger(__name__)


class SwarmService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_accessible(self, swarm_id: uuid.UUID, user: Profile) -> Swarm:
        swarm = await self.db.get(Swarm, swarm_id)
        if swarm is None or (swarm.user_id != user.id and swarm.visibility != "public"):
            raise ResourceNotFoundError("Swarm", str(swarm_id))
        return swarm

    async def get_owned(self, swarm_id: uuid.UUID, user: Profile) -> Swarm:
        swarm = await self.db.get(Swarm, swarm_id)
        if swarm is None or swarm.user_id != user.id:
            raise ResourceNotFoundError("Swarm", str(swarm_id))
        return swarm

    async def list_owned(
        self, user: Profile, status: str | None = None, limit: int = 50, offset: int = 0,
    ) -> list[Swarm]:
        query = select(Swarm).where(Swarm.user_id == user.id)
        if status:
            query = query.where(Swarm.status == status)
        result = await self.db.execute(
            query.order_by(Swarm.created_at.desc()).limit(limit).offset(offset),
        )
        return list(result.scalars().all())

    async def _unique_slug(self, user_id: uuid.UUID, name: str) -> str:
        result = await self.db.execute(select(Swarm.slug).where(Swarm.user_id == user_id))
        return generate_unique_slug(
            generate_slug(name) or "swarm", set(result.scalars().all()),
        )

    async def create(self, user: Profile, body: SwarmCreate) -> Swarm:
        await RateLimiter(self.db).enforce(user, RateLimitEventType.SWARM_CREATE.value)
        swarm = Swarm(
            user_id=user.id,
            name=body.name,
            slug=await self._unique_slug(user.id, body.name),
            task=body.task,
            visibility=body.visibility,
            settings=body.settings,
        )
        self.db.add(swarm)
        await self.db.flush()
        for agent_id in dict.fromkeys(body.agent_ids):
            agent = await self._owned_agent(agent_id, user)
            self.db.add(SwarmAgent(swarm_id=swarm.id, agent_id=agent.id))
        await emit_event(
            self.db, user.id, WebhookEventType.SWARM_CREATED.value, "swarm", swarm.id,
            {"name": swarm.name, "slug": swarm.slug},
        )
        await self.db.commit()
        await self.db.refresh(swarm, attribute_names=["members"])
        logger.info("Swarm created", extra={"swarm_id": str(swarm.id), "user_id": str(user.id)})
        return swarm

    async def update(self, swarm_id: uuid.UUID, user: Profile, body: SwarmUpdate) -> Swarm:
        swarm = await self.get_owned(swarm_id, user)
        changes = body.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and changes["name"] != swarm.name:
            swarm.slug = await self._unique_slug(user.id, changes["name"])
        for name, value in changes.items():
            setattr(swarm, name, value)
        await self.db.commit()
        await self.db.refresh(swarm)
        return swarm

    async def delete(self, swarm_id: uuid.UUID, user: Profile) -> None:
        swarm = await self.get_owned(swarm_id, user)
        for model in (Message, ContextBlock, SwarmPresence):
            await self.db.execute(delete(model).where(model.swarm_id == swarm.id))
        await self.db.delete(swarm)
        await self.db.commit()
        logger.info("Swarm deleted", extra={"swarm_id": str(swarm_id)})

    async def _owned_agent(self, agent_id: uuid.UUID, user: Profile) -> Agent:
        result = await self.db.execute(
            select(Agent).where(Agent.id == agent_id, Agent.user_id == user.id),
        )
        agent = result.scalar_one_or_none()
        if agent is None:
            raise ResourceNotFoundError("Agent", str(agent_id))
        return agent

    async def add_agent(self, swarm_id: uuid.UUID, agent_id: uuid.UUID, user: Profile) -> Swarm:
        swarm = await self.get_owned(swarm_id, user)
        agent = await self._owned_agent(agent_id, user)
        if any(m.agent_id == agent.id for m in swarm.members):
            raise ConflictError("Agent is already in this swarm")
        swarm.members.append(SwarmAgent(swarm_id=swarm.id, agent_id=agent.id))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Agent is already in this swarm")
        await self.db.refresh(swarm, attribute_names=["members"])
        return swarm

    async def remove_agent(self, swarm_id: uuid.UUID, agent_id: uuid.UUID, user: Profile) -> Swarm:
        swarm = await self.get_owned(swarm_id, user)
        member = next((m for m in swarm.members if m.agent_id == agent_id), None)
        if member is None:
            raise ResourceNotFoundError("Swarm agent", str(agent_id))
        swarm.members.remove(member)
        await self.db.commit()
        await self.db.refresh(swarm, attribute_names=["members"])
        return swarm
