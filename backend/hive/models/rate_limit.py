"""Rate Limit ORM: consumed events and admin-editable per-plan limits.

Invariants:
    - RateLimitEvent rows are append-only; usage is counted from created_at windows
    - PlanRateLimit.plan is the primary key; missing rows fall back to built-in defaults
      (core/rate_limit_policy.DEFAULT_PLAN_LIMITS)
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hive.core.domain_types import utcnow
from hive.db.base import Base


class RateLimitEvent(Base):
    __tablename__ = "rate_limit_events"
    __table_args__ = (
        Index("ix_rate_limit_events_user_type_time", "user_id", "event_type", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )


class PlanRateLimit(Base):
    __tablename__ = "plan_rate_limits"

    plan: Mapped[str] = mapped_column(String(20), primary_key=True)
    messages_per_minute: Mapped[int] = mapped_column(Integer, nullable=False)
    messages_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    requests_per_minute: Mapped[int] = mapped_column(Integer, nullable=False)
    requests_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    tokens_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    max_agents: Mapped[int] = mapped_column(Integer, nullable=False)
    max_swarms: Mapped[int] = mapped_column(Integer, nullable=False)
    agents_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    swarms_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
