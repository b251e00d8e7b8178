"""TeamTemplate ORM: reusable agent blueprint with single-parent inheritance.

Invariants:
    - parent_template_id never forms a cycle (checked by services/templates.py)
    - override_fields is a subset of core/template_inheritance.INHERITABLE_FIELDS
    - inheritance_mode is inherit | compose
    - Column defaults (anthropic/general/Bot) double as "not set" markers during resolution
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hive.core.domain_types import utcnow
from hive.db.base import Base


class TeamTemplate(Base):
    __tablename__ = "team_templates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[str | None] = mapped_column(String(200), nullable=True)
    framework: Mapped[str] = mapped_column(String(20), nullable=False, default="anthropic")
    system_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    icon: Mapped[str] = mapped_column(String(50), nullable=False, default="Bot")
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    permission_level: Mapped[str] = mapped_column(
        String(10), nullable=False, default="use",
    )
    parent_template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("team_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    override_fields: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    inheritance_mode: Mapped[str] = mapped_column(
        String(10), nullable=False, default="inherit",
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
