"""Presence Routes: join, heartbeat, leave and list viewers of a swarm."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.core.domain_types import ensure_utc
from hive.core.presence import HEARTBEAT_INTERVAL, partition_viewers
from hive.infrastructure.database import get_db
from hive.models.presence import SwarmPresence
from hive.models.profile import Profile
from hive.services.presence_service import PresenceService
from hive.services.swarms import SwarmService

router = APIRouter(prefix="/api/v1/swarms/{swarm_id}/presence", tags=["presence"])


class HeartbeatRequest(BaseModel):
    is_active: bool = True


def _viewer(row: SwarmPresence) -> dict:
    profile = row.profile
    return {
        "user_id": str(row.user_id),
        "full_name": profile.full_name if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        "is_active": row.is_active,
        "joined_at": ensure_utc(row.joined_at).isoformat(),
        "last_seen_at": ensure_utc(row.last_seen_at).isoformat(),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def join(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    await PresenceService(db).join(swarm.id, user.id)
    return {
        "success": True,
        "heartbeat_interval_seconds": int(HEARTBEAT_INTERVAL.total_seconds()),
    }


@router.put("")
async def heartbeat(
    swarm_id: UUID,
    body: HeartbeatRequest | None = None,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    is_active = body.is_active if body is not None else True
    await PresenceService(db).heartbeat(swarm.id, user.id, is_active)
    return {"success": True}


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def leave(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await PresenceService(db).leave(swarm_id, user.id)


@router.get("")
async def list_viewers(
    swarm_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    swarm = await SwarmService(db).get_accessible(swarm_id, user)
    viewers = await PresenceService(db).list_viewers(swarm.id)
    partition = partition_viewers(viewers, user.id)
    return {
        "viewers": [_viewer(v) for v in viewers],
        "other_viewers": [_viewer(v) for v in partition.other],
        "active": [_viewer(v) for v in partition.active],
        "inactive": [_viewer(v) for v in partition.inactive],
        "total": partition.total,
    }
