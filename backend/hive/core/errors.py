"""HIVE exceptions: one base class, mapped to the REST error body and SSE error events.

Invariants:
    - code is the machine-readable string clients switch on (RATE_LIMIT_EXCEEDED, ...)
    - http_status drives the response status; 4xx carry severity ERROR, 5xx CRITICAL
    - to_response() is the {"error": {...}} body; to_sse_event() is the in-stream event
    - Messages are written for end users: no SQL, stack traces or provider payloads

Design Decisions:
    - Services raise, routes never catch: the handlers in api/error_handlers.py render
    - ErrorContext carries request/user/swarm ids so log lines and bodies agree
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Drives log level and the SSE recoverable flag."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and client envelopes."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    user_id: str | None = None
    swarm_id: str | None = None
    agent_id: str | None = None
    retry_after_seconds: int | None = None
    debug_info: dict[str, Any] | None = None


class HiveError(Exception):
    """Base exception for all HIVE errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Body for JSON error responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "request_id": self.context.request_id,
                    "swarm_id": self.context.swarm_id,
                    "agent_id": self.context.agent_id,
                    "retry_after": self.context.retry_after_seconds,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Payload for an in-stream error event."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Client (4xx) ──────────────────────────────────────────────

class InputValidationError(HiveError):
    """Request payload failed a domain-level validation."""
    def __init__(
        self, message: str, field: str | None = None,
        details: dict[str, str] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field
        self.details = details or {}

    def to_response(self) -> dict:
        body = super().to_response()
        if self.details:
            body["error"]["details"] = [
                {"field": key, "message": msg}
                for key, msg in self.details.items()
            ]
        return body


class AuthenticationError(HiveError):
    """Missing, malformed, or expired credentials."""
    def __init__(self, message: str = "Unauthorized", context: ErrorContext | None = None):
        super().__init__(
            message, "AUTH_ERROR", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class AuthorizationError(HiveError):
    """Authenticated caller lacks the required role."""
    def __init__(
        self, message: str = "Admin access required", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(HiveError):
    """Requested resource does not exist (or is not visible to the caller)."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(HiveError):
    """Request conflicts with current state (duplicates, cycles, locks)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class RateLimitExceededError(HiveError):
    """Plan limit reached for an event type."""
    def __init__(
        self,
        message: str,
        retry_after: int,
        event_type: str,
        usage: dict | None = None,
        limits: dict | None = None,
        headers: dict[str, str] | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_seconds = retry_after
        super().__init__(
            message, "RATE_LIMIT_EXCEEDED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, ctx, 429,
        )
        self.retry_after = retry_after
        self.event_type = event_type
        self.usage = usage or {}
        self.limits = limits or {}
        self.headers = headers or {}

    def to_response(self) -> dict:
        body = super().to_response()
        body["error"]["retry_after"] = self.retry_after
        body["error"]["event_type"] = self.event_type
        body["error"]["usage"] = self.usage
        body["error"]["limits"] = self.limits
        return body


class MissingAPIKeyError(HiveError):
    """Agent owner has not configured an API key for the agent framework."""
    def __init__(self, framework: str, context: ErrorContext | None = None):
        super().__init__(
            f"No API key configured for {framework}. "
            "Please add your API key in Settings > Integrations.",
            "MISSING_API_KEY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.framework = framework


# ─── Infrastructure (5xx) ───────────────────────────────────────

_PROVIDER_STATUS = {
    "RATE_LIMIT": 429,
    "AUTH_ERROR": 401,
    "TIMEOUT": 504,
    "PROVIDER_ERROR": 502,
}

_PROVIDER_USER_MESSAGES = {
    "RATE_LIMIT": "Rate limit exceeded. Please wait a moment and try again.",
    "QUOTA_EXCEEDED": (
        "API quota exceeded. Please check your billing settings with your AI provider."
    ),
}


class ProviderAPIError(HiveError):
    """LLM provider call failed (OpenAI, Anthropic, Google)."""
    def __init__(
        self,
        message: str,
        kind: str,
        provider: str,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_seconds = retry_after
        super().__init__(
            _PROVIDER_USER_MESSAGES.get(kind, message), kind,
            ErrorCategory.EXTERNAL_API, ErrorSeverity.CRITICAL, ctx,
            _PROVIDER_STATUS.get(kind, 502),
        )
        self.kind = kind
        self.provider = provider
        self.detail = message


class OperationTimeoutError(HiveError):
    """An awaited operation exceeded its deadline."""
    def __init__(
        self, message: str, timeout_seconds: float, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, context, 504,
        )
        self.timeout_seconds = timeout_seconds


class DatabaseError(HiveError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
