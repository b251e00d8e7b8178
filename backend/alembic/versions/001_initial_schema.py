"""Initial schema: profiles, agents, swarms, messages, templates, rate limits, webhooks.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _owner(ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        "user_id", UUID(as_uuid=True),
        sa.ForeignKey("profiles.id", ondelete=ondelete), nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("avatar_url", sa.String(2048), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("plan", sa.String(20), nullable=False, server_default="free"),
        _created_at(),
    )

    op.create_table(
        "agents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(200), nullable=True),
        sa.Column("framework", sa.String(20), nullable=False, server_default="anthropic"),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("system_prompt", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("settings", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_agents_user_id", "agents", ["user_id"])

    op.create_table(
        "swarms",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("task", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="private"),
        sa.Column("settings", sa.JSON, nullable=False, server_default="{}"),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", "slug", name="uq_swarms_user_slug"),
    )
    op.create_index("ix_swarms_user_id", "swarms", ["user_id"])

    op.create_table(
        "swarm_agents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "swarm_id", UUID(as_uuid=True),
            sa.ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "agent_id", UUID(as_uuid=True),
            sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("swarm_id", "agent_id", name="uq_swarm_agents_pair"),
    )

    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "swarm_id", UUID(as_uuid=True),
            sa.ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("sender_type", sa.String(20), nullable=False),
        sa.Column("sender_id", UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("signature", sa.String(128), nullable=True),
        sa.Column("content_hash", sa.String(64), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_messages_swarm_id", "messages", ["swarm_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    op.create_table(
        "context_blocks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "swarm_id", UUID(as_uuid=True),
            sa.ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
        ),
        _owner(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("shared", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
    )
    op.create_index("ix_context_blocks_swarm_id", "context_blocks", ["swarm_id"])

    op.create_table(
        "integrations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("credentials", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", "provider", name="uq_integrations_user_provider"),
    )

    op.create_table(
        "team_templates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("role", sa.String(200), nullable=True),
        sa.Column("framework", sa.String(20), nullable=False, server_default="anthropic"),
        sa.Column("system_prompt", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("tags", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("icon", sa.String(50), nullable=False, server_default="Bot"),
        sa.Column("settings", sa.JSON, nullable=True),
        sa.Column("permission_level", sa.String(10), nullable=False, server_default="use"),
        sa.Column(
            "parent_template_id", UUID(as_uuid=True),
            sa.ForeignKey("team_templates.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("override_fields", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("inheritance_mode", sa.String(10), nullable=False, server_default="inherit"),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default="false"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_team_templates_user_id", "team_templates", ["user_id"])

    op.create_table(
        "swarm_presence",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "swarm_id", UUID(as_uuid=True),
            sa.ForeignKey("swarms.id", ondelete="CASCADE"), nullable=False,
        ),
        _owner(),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
        ),
        sa.Column(
            "last_seen_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("cursor_position", sa.JSON, nullable=False, server_default="{}"),
        sa.UniqueConstraint("swarm_id", "user_id", name="uq_swarm_presence_viewer"),
    )
    op.create_index("ix_swarm_presence_last_seen_at", "swarm_presence", ["last_seen_at"])

    op.create_table(
        "rate_limit_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("amount", sa.Integer, nullable=False, server_default="1"),
        _created_at(),
    )
    op.create_index(
        "ix_rate_limit_events_user_type_time", "rate_limit_events",
        ["user_id", "event_type", "created_at"],
    )

    op.create_table(
        "plan_rate_limits",
        sa.Column("plan", sa.String(20), primary_key=True),
        *[
            sa.Column(name, sa.Integer, nullable=False)
            for name in (
                "messages_per_minute", "messages_per_day", "requests_per_minute",
                "requests_per_day", "tokens_per_day", "max_agents", "max_swarms",
                "agents_per_day", "swarms_per_day",
            )
        ],
        _updated_at(),
    )

    op.create_table(
        "ai_usage",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("swarm_id", UUID(as_uuid=True), nullable=True),
        sa.Column("agent_id", UUID(as_uuid=True), nullable=True),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("input_tokens", sa.Integer, nullable=False, server_default="0"),
        sa.Column("output_tokens", sa.Integer, nullable=False, server_default="0"),
        sa.Column("input_cost", sa.Float, nullable=False, server_default="0"),
        sa.Column("output_cost", sa.Float, nullable=False, server_default="0"),
        sa.Column("latency_ms", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error_code", sa.String(50), nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("request_metadata", sa.JSON, nullable=False, server_default="{}"),
        _created_at(),
    )
    op.create_index("ix_ai_usage_user_id", "ai_usage", ["user_id"])

    op.create_table(
        "webhooks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("secret", sa.String(128), nullable=True),
        sa.Column("events", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_webhooks_user_id", "webhooks", ["user_id"])

    op.create_table(
        "webhook_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("payload", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempt_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_attempts", sa.Integer, nullable=False, server_default="5"),
        sa.Column(
            "next_attempt_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("last_error", sa.Text, nullable=True),
        _created_at(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_webhook_events_status", "webhook_events", ["status"])

    op.create_table(
        "webhook_deliveries",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "webhook_id", UUID(as_uuid=True),
            sa.ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "event_id", UUID(as_uuid=True),
            sa.ForeignKey("webhook_events.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("response_status", sa.Integer, nullable=True),
        sa.Column("response_body", sa.Text, nullable=True),
        sa.Column("duration_ms", sa.Integer, nullable=False, server_default="0"),
        sa.Column("success", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("attempt_number", sa.Integer, nullable=False, server_default="1"),
        _created_at(),
    )
    op.create_index("ix_webhook_deliveries_webhook_id", "webhook_deliveries", ["webhook_id"])

    op.create_table(
        "feedback",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(ondelete="SET NULL", nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("screenshot_url", sa.String(2048), nullable=True),
        sa.Column("page_url", sa.String(2048), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        _created_at(),
    )

    op.create_table(
        "nps_responses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _owner(),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("trigger", sa.String(50), nullable=False, server_default="widget"),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        "nps_responses", "feedback", "webhook_deliveries", "webhook_events", "webhooks",
        "ai_usage", "plan_rate_limits", "rate_limit_events", "swarm_presence",
        "team_templates", "integrations", "context_blocks", "messages", "swarm_agents",
        "swarms", "agents", "profiles",
    ):
        op.drop_table(table)
