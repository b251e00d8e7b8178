"""Agent Respond: POST /api/v1/swarms/{swarm_id}/respond streams one agent reply.

Invariants:
    - Response is text/event-stream: `data: {"content": ...}` chunks, then `data: [DONE]`
    - X-Agent-Id / X-Agent-Name (URL-encoded) identify the answering agent
    - Failures before the first chunk are regular JSON error responses

Design Decisions:
    - StreamingResponse with anti-buffering headers (nginx X-Accel-Buffering, Cache-Control)
"""

import logging
import random
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import (
    get_current_user, get_provider_gateway, get_rng, get_session_factory,
)
from hive.config import Settings, get_settings
from hive.infrastructure.database import get_db
from hive.infrastructure.llm_providers import ProviderGateway
from hive.models.profile import Profile
from hive.schemas.swarm import RespondRequest
from hive.services.agent_responder import AgentResponder, SessionFactory

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/swarms", tags=["agent-respond"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


@router.post("/{swarm_id}/respond")
async def respond(
    swarm_id: UUID,
    body: RespondRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateway: ProviderGateway = Depends(get_provider_gateway),
    session_factory: SessionFactory = Depends(get_session_factory),
    rng: random.Random = Depends(get_rng),
):
    responder = AgentResponder(db, gateway, settings, session_factory, rng)
    prepared = await responder.prepare(swarm_id, user, body)
    events = await responder.open_stream(prepared)
    return StreamingResponse(
        events,
        media_type="text/event-stream",
        headers={
            **_SSE_HEADERS,
            "X-Agent-Id": str(prepared.agent.id),
            "X-Agent-Name": quote(prepared.agent.name),
        },
    )
