"""Swarm ORM: a named collection of agents collaborating on a task.

Invariants:
    - slug is unique per owner (user_id, slug)
    - status is active | paused | archived
    - SwarmAgent rows are unique per (swarm_id, agent_id)
    - visibility public lets any signed-in user read and talk to the swarm

Design Decisions:
    - members loaded with selectin (agent included): the responder needs the roster on
      every request and swarms hold a handful of agents
    - Child rows (messages, context, presence) deleted explicitly by the service: SQLite
      test databases do not enforce ON DELETE CASCADE
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, DateTime, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hive.core.domain_types import utcnow
from hive.db.base import Base


class Swarm(Base):
    __tablename__ = "swarms"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_swarms_user_slug"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    task: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    visibility: Mapped[str] = mapped_column(
        String(20), nullable=False, default="private",
    )
    settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    members: Mapped[list["SwarmAgent"]] = relationship(
        "SwarmAgent", back_populates="swarm",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="SwarmAgent.joined_at",
    )

    @property
    def agents(self) -> list:
        return [m.agent for m in self.members if m.agent is not None]


class SwarmAgent(Base):
    __tablename__ = "swarm_agents"
    __table_args__ = (
        UniqueConstraint("swarm_id", "agent_id", name="uq_swarm_agents_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    swarm_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("agents.id", ondelete="CASCADE"), nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )

    swarm: Mapped["Swarm"] = relationship("Swarm", back_populates="members")
    agent: Mapped["Agent"] = relationship("Agent", lazy="selectin")
