"""Webhook Schemas: subscriptions, test deliveries and dispatch triggers.

Invariants:
    - url is http(s), carries no credentials and passes is_allowed_url
    - events is non-empty and only names WebhookEventType values
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hive.core.domain_types import WebhookEventType
from hive.core.sanitize import sanitize_url
from hive.core.webhook_signing import DISALLOWED_URL_MESSAGE, is_allowed_url
from hive.schemas.agent import clean_name


def _check_url(v: str | None) -> str | None:
    if v is None:
        return None
    url = sanitize_url(v)
    if url is None:
        raise ValueError("url must be a valid http(s) URL")
    if not is_allowed_url(url):
        raise ValueError(DISALLOWED_URL_MESSAGE)
    return url


def _check_events(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    allowed = {e.value for e in WebhookEventType}
    unknown = [e for e in v if e not in allowed]
    if unknown:
        raise ValueError(f"unknown event types: {', '.join(unknown)}")
    return list(dict.fromkeys(v))


class WebhookCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    url: str = Field(min_length=1, max_length=2048)
    events: list[str] = Field(min_length=1)
    secret: str | None = Field(None, min_length=16, max_length=128)
    is_active: bool = True

    check_name = field_validator("name")(clean_name)
    check_url = field_validator("url")(_check_url)
    check_events = field_validator("events")(_check_events)


class WebhookUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    url: str | None = Field(None, min_length=1, max_length=2048)
    events: list[str] | None = Field(None, min_length=1)
    is_active: bool | None = None
    rotate_secret: bool = False

    check_name = field_validator("name")(clean_name)
    check_url = field_validator("url")(_check_url)
    check_events = field_validator("events")(_check_events)


class WebhookResponse(BaseModel):
    """The secret is only returned on create and rotation."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    url: str
    events: list[str]
    is_active: bool
    secret: str | None = None
    created_at: datetime


class WebhookDeliveryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    webhook_id: UUID
    event_id: UUID | None
    event_type: str
    response_status: int | None
    response_body: str | None
    duration_ms: int
    success: bool
    error_message: str | None
    attempt_number: int
    created_at: datetime


class WebhookTestRequest(BaseModel):
    """One-off signed delivery. Needs webhook_id or url."""
    webhook_id: UUID | None = None
    url: str | None = Field(None, max_length=2048)
    secret: str | None = Field(None, max_length=128)
    event_type: str = Field("test", min_length=1, max_length=50)
    payload: dict[str, Any] = Field(default_factory=dict)

    check_url = field_validator("url")(_check_url)

    @model_validator(mode="after")
    def require_target(self):
        if self.webhook_id is None and self.url is None:
            raise ValueError("webhook_id or url is required")
        return self


class DispatchRequest(BaseModel):
    mode: Literal["process", "single"] = "process"
    event_id: UUID | None = None
    limit: int = Field(50, ge=1, le=500)

    @model_validator(mode="after")
    def single_needs_event(self):
        if self.mode == "single" and self.event_id is None:
            raise ValueError("single mode requires event_id")
        return self
