"""Conversation Service: swarm messages and shared context blocks.

Invariants:
    - Messages list in created_at ascending order
    - Human messages consume a `message` rate-limit event, are signed on insert and
      queue message.created
    - Context blocks are only created/deleted by the swarm owner (checked by the route)
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import RateLimitEventType, SenderType, WebhookEventType
from hive.core.errors import ResourceNotFoundError
from hive.models.context_block import ContextBlock
from hive.models.message import Message
from hive.models.profile import Profile
from hive.models.swarm import Swarm
from hive.schemas.swarm import ContextBlockCreate
from hive.services.message_signatures import MessageSignatureService
from hive.services.rate_limiter import RateLimiter
from hive.services.webhook_dispatcher import emit_event

logger = logging.getLogger(__name__)


class ConversationService:

    def __init__(self, db: AsyncSession, signing_secret: str):
        self.db = db
        self.signer = MessageSignatureService(db, signing_secret)

    async def list_messages(
        self, swarm_id: uuid.UUID, limit: int = 50, offset: int = 0,
    ) -> list[Message]:
        result = await self.db.execute(
            select(Message)
            .where(Message.swarm_id == swarm_id)
            .order_by(Message.created_at)
            .limit(limit)
            .offset(offset),
        )
        return list(result.scalars().all())

    async def recent_messages(self, swarm_id: uuid.UUID, limit: int = 50) -> list[Message]:
        """Last `limit` messages, oldest first."""
        result = await self.db.execute(
            select(Message)
            .where(Message.swarm_id == swarm_id)
            .order_by(Message.created_at.desc())
            .limit(limit),
        )
        return list(reversed(result.scalars().all()))

    async def add_message(
        self,
        swarm: Swarm,
        sender_type: str,
        sender_id: uuid.UUID | None,
        content: str,
        metadata: dict | None = None,
    ) -> Message:
        """Insert and sign a message. Flushes; the caller commits."""
        message = Message(
            swarm_id=swarm.id, sender_type=sender_type, sender_id=sender_id,
            content=content, meta=metadata or {},
        )
        self.db.add(message)
        await self.db.flush()
        self.signer.apply_signature(message)
        await emit_event(
            self.db, swarm.user_id, WebhookEventType.MESSAGE_CREATED.value, "message",
            message.id,
            {"swarm_id": str(swarm.id), "sender_type": sender_type, "content": content},
        )
        return message

    async def post_human_message(
        self, swarm: Swarm, user: Profile, content: str, metadata: dict | None = None,
    ) -> Message:
        await RateLimiter(self.db).enforce(
            user, RateLimitEventType.MESSAGE.value, resource_id=str(swarm.id),
        )
        message = await self.add_message(
            swarm, SenderType.HUMAN.value, user.id, content, metadata,
        )
        await self.db.commit()
        await self.db.refresh(message)
        return message

    async def list_context(self, swarm_id: uuid.UUID, shared_only: bool = False) -> list[ContextBlock]:
        query = select(ContextBlock).where(ContextBlock.swarm_id == swarm_id)
        if shared_only:
            query = query.where(ContextBlock.shared.is_(True))
        result = await self.db.execute(query.order_by(ContextBlock.created_at))
        return list(result.scalars().all())

    async def add_context(
        self, swarm: Swarm, user: Profile, body: ContextBlockCreate,
    ) -> ContextBlock:
        block = ContextBlock(
            swarm_id=swarm.id, user_id=user.id, name=body.name,
            content=body.content, priority=body.priority, shared=body.shared,
        )
        self.db.add(block)
        await self.db.commit()
        await self.db.refresh(block)
        return block

    async def delete_context(self, swarm: Swarm, block_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(ContextBlock).where(
                ContextBlock.id == block_id, ContextBlock.swarm_id == swarm.id,
            ),
        )
        block = result.scalar_one_or_none()
        if block is None:
            raise ResourceNotFoundError("Context block", str(block_id))
        await self.db.delete(block)
        await self.db.commit()
