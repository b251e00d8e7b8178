"""SwarmPresence ORM: who is currently viewing a swarm.

Invariants:
    - One row per (swarm_id, user_id); join upserts
    - Rows older than core/presence.STALE_THRESHOLD are ignored and pruned
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hive.core.domain_types import utcnow
from hive.db.base import Base


class SwarmPresence(Base):
    __tablename__ = "swarm_presence"
    __table_args__ = (
        UniqueConstraint("swarm_id", "user_id", name="uq_swarm_presence_viewer"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    swarm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    cursor_position: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    profile: Mapped["Profile"] = relationship("Profile", lazy="selectin")
