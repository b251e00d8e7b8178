"""Presence Service: swarm viewer rows (join, heartbeat, leave, list, prune).

Invariants:
    - One SwarmPresence row per (swarm_id, user_id); join is an upsert
    - list_viewers never returns rows older than STALE_THRESHOLD
    - heartbeat for an absent viewer joins them
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import utcnow
from hive.core.presence import stale_cutoff
from hive.models.presence import SwarmPresence

logger = logging.getLogger(__name__)


class PresenceService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, swarm_id: uuid.UUID, user_id: uuid.UUID) -> SwarmPresence | None:
        result = await self.db.execute(
            select(SwarmPresence).where(
                SwarmPresence.swarm_id == swarm_id, SwarmPresence.user_id == user_id,
            ),
        )
        return result.scalar_one_or_none()

    async def join(
        self, swarm_id: uuid.UUID, user_id: uuid.UUID, now: datetime | None = None,
    ) -> SwarmPresence:
        now = now or utcnow()
        row = await self._get(swarm_id, user_id)
        if row is None:
            row = SwarmPresence(swarm_id=swarm_id, user_id=user_id)
            self.db.add(row)
        row.joined_at = now
        row.last_seen_at = now
        row.is_active = True
        await self.db.commit()
        return row

    async def heartbeat(
        self, swarm_id: uuid.UUID, user_id: uuid.UUID, is_active: bool = True,
        now: datetime | None = None,
    ) -> SwarmPresence:
        now = now or utcnow()
        row = await self._get(swarm_id, user_id)
        if row is None:
            row = await self.join(swarm_id, user_id, now)
        row.last_seen_at = now
        row.is_active = is_active
        await self.db.commit()
        return row

    async def leave(self, swarm_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(SwarmPresence).where(
                SwarmPresence.swarm_id == swarm_id, SwarmPresence.user_id == user_id,
            ),
        )
        await self.db.commit()

    async def list_viewers(
        self, swarm_id: uuid.UUID, now: datetime | None = None,
    ) -> list[SwarmPresence]:
        result = await self.db.execute(
            select(SwarmPresence)
            .where(
                SwarmPresence.swarm_id == swarm_id,
                SwarmPresence.last_seen_at >= stale_cutoff(now or utcnow()),
            )
            .order_by(SwarmPresence.joined_at),
        )
        return list(result.scalars().all())

    async def prune_stale(self, now: datetime | None = None) -> int:
        result = await self.db.execute(
            delete(SwarmPresence).where(
                SwarmPresence.last_seen_at < stale_cutoff(now or utcnow()),
            ),
        )
        await self.db.commit()
        logger.info(f"Pruned {result.rowcount} stale presence rows")
        return result.rowcount
