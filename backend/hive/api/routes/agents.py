"""Agent Routes: owner-scoped CRUD under /api/v1/agents."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.agent import AgentCreate, AgentResponse, AgentUpdate
from hive.services.agents import AgentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/agents", tags=["agents"])


@router.post("", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(
    body: AgentCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an agent. Consumes one agent_create rate-limit event."""
    return await AgentService(db).create(user, body)


@router.get("", response_model=list[AgentResponse])
async def list_agents(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AgentService(db).list_owned(user, limit, offset)


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AgentService(db).get_owned(agent_id, user)


@router.patch("/{agent_id}", response_model=AgentResponse)
async def update_agent(
    agent_id: UUID,
    body: AgentUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AgentService(db).update(agent_id, user, body)


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent(
    agent_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AgentService(db).delete(agent_id, user)
