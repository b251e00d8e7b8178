"""Swarm Routes: swarm CRUD, membership, messages and context blocks.

Invariants:
    - Reads (get, messages, context list, post message) need read access (owner or public)
    - Writes (update, delete, membership, context create/delete) need ownership
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.config import Settings, get_settings
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.swarm import (
    ContextBlockCreate, ContextBlockResponse, MessageCreate, MessageResponse,
    SwarmAgentAdd, SwarmCreate, SwarmResponse, SwarmStatusName, SwarmUpdate,
)
from hive.services.conversation import ConversationService
from hive.services.swarms import SwarmService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/swarms", tags=["swarms"])


@router.post("", response_model=SwarmResponse, status_code=status.HTTP_201_CREATED)
async def create_swarm(
    body: SwarmCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a swarm. Consumes one swarm_create rate-limit event."""
    return await SwarmService(db).create(user, body)


@router.get("", response_model=list[SwarmResponse])
async def list_swarms(
    status_filter: SwarmStatusName | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SwarmService(db).list_owned(user, status_filter, limit, offset)


@router.get("/{swarm_id}", response_model=SwarmResponse)
async def get_swarm(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SwarmService(db).get_accessible(swarm_id, user)


@router.patch("/{swarm_id}", response_model=SwarmResponse)
async def update_swarm(
    swarm_id: UUID,
    body: SwarmUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SwarmService(db).update(swarm_id, user, body)


@router.delete("/{swarm_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_swarm(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await SwarmService(db).delete(swarm_id, user)


# ─── Membership ─────────────────────────────────────────────────

@router.post(
    "/{swarm_id}/agents", response_model=SwarmResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_swarm_agent(
    swarm_id: UUID,
    body: SwarmAgentAdd,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SwarmService(db).add_agent(swarm_id, body.agent_id, user)


@router.delete("/{swarm_id}/agents/{agent_id}", response_model=SwarmResponse)
async def remove_swarm_agent(
    swarm_id: UUID,
    agent_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SwarmService(db).remove_agent(swarm_id, agent_id, user)


# ─── Messages ───────────────────────────────────────────────────

@router.get("/{swarm_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    swarm_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    messages = await ConversationService(db, settings.message_signing_secret).list_messages(
        swarm.id, limit, offset,
    )
    return [MessageResponse.from_model(m) for m in messages]


@router.post(
    "/{swarm_id}/messages", response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_message(
    swarm_id: UUID,
    body: MessageCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Post a human message. Consumes one `message` rate-limit event."""
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    message = await ConversationService(db, settings.message_signing_secret).post_human_message(
        swarm, user, body.content, body.metadata,
    )
    return MessageResponse.from_model(message)


# ─── Context blocks ─────────────────────────────────────────────

@router.get("/{swarm_id}/context", response_model=list[ContextBlockResponse])
async def list_context(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    return await ConversationService(db, settings.message_signing_secret).list_context(
        swarm.id, shared_only=swarm.user_id != user.id,
    )


@router.post(
    "/{swarm_id}/context", response_model=ContextBlockResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_context(
    swarm_id: UUID,
    body: ContextBlockCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    swarm = await SwarmService(db).get_owned(swarm_id, user)
    return await ConversationService(db, settings.message_signing_secret).add_context(
        swarm, user, body,
    )


@router.delete("/{swarm_id}/context/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_context(
    swarm_id: UUID,
    block_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    swarm = await SwarmService(db).get_owned(swarm_id, user)
    await ConversationService(db, settings.message_signing_secret).delete_context(
        swarm, block_id,
    )
