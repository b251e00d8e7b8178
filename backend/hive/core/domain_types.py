"""Domain Types: enums that replace bare strings across the codebase.

Invariants:
    - All valid states encoded as Enums (no raw string matching in core logic)
    - str Enums serialize to JSON without custom encoders
"""

from datetime import datetime, timezone
from enum import Enum


class Framework(str, Enum):
    """LLM provider an agent runs on. Stored on Agent.framework."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


class SwarmStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class SenderType(str, Enum):
    HUMAN = "human"
    AGENT = "agent"
    SYSTEM = "system"


class HumanMode(str, Enum):
    """How agents treat human input in a swarm conversation."""
    OBSERVE = "observe"
    COLLABORATE = "collaborate"
    DIRECT = "direct"


class ContextPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RateLimitEventType(str, Enum):
    MESSAGE = "message"
    REQUEST = "request"
    AI_REQUEST = "ai_request"
    AGENT_CREATE = "agent_create"
    SWARM_CREATE = "swarm_create"
    TOKENS = "tokens"


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    UNLIMITED = "unlimited"
    ENTERPRISE = "enterprise"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class InheritanceMode(str, Enum):
    """inherit: child prompt replaces parent's; compose: parent + separator + child."""
    INHERIT = "inherit"
    COMPOSE = "compose"


class PermissionLevel(str, Enum):
    VIEW = "view"
    USE = "use"
    EDIT = "edit"


class WebhookEventStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FeedbackType(str, Enum):
    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"
    OTHER = "other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WebhookEventType(str, Enum):
    """Event types a webhook can subscribe to."""
    SWARM_CREATED = "swarm.created"
    AGENT_CREATED = "agent.created"
    MESSAGE_CREATED = "message.created"
    AGENT_ERROR = "agent.error"
