"""Swarm Schemas: swarms, membership, messages, context blocks and agent responses.

Invariants:
    - Swarm names sanitized like agent names; task sanitized as plain text
    - Message content sanitized by sanitize_message_content and non-empty afterwards
    - RespondRequest.max_tokens 1..8192, temperature 0..2

Design Decisions:
    - Literal types for status/priority/human_mode: Pydantic rejects unknown values with 400
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hive.core.sanitize import sanitize_message_content, sanitize_swarm_name, sanitize_text
from hive.schemas.agent import AgentResponse, clean_optional_text

SwarmStatusName = Literal["active", "paused", "archived"]
VisibilityName = Literal["private", "public"]
PriorityName = Literal["critical", "high", "medium", "low"]
HumanModeName = Literal["observe", "collaborate", "direct"]


def _clean_swarm_name(v: str | None) -> str | None:
    if v is None:
        return None
    v = sanitize_swarm_name(v)
    if not v:
        raise ValueError("name cannot be empty")
    return v


def _clean_message(v: str) -> str:
    v = sanitize_message_content(v)
    if not v:
        raise ValueError("message cannot be empty")
    return v


class SwarmCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    task: str | None = Field(None, max_length=10_000)
    visibility: VisibilityName = "private"
    settings: dict = Field(default_factory=dict)
    agent_ids: list[UUID] = Field(default_factory=list, max_length=20)

    check_name = field_validator("name")(_clean_swarm_name)
    check_task = field_validator("task")(clean_optional_text)


class SwarmUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    task: str | None = Field(None, max_length=10_000)
    status: SwarmStatusName | None = None
    visibility: VisibilityName | None = None
    settings: dict | None = None

    check_name = field_validator("name")(_clean_swarm_name)
    check_task = field_validator("task")(clean_optional_text)


class SwarmResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    slug: str
    task: str | None
    status: str
    visibility: str
    settings: dict
    agents: list[AgentResponse] = []
    created_at: datetime
    updated_at: datetime


class SwarmAgentAdd(BaseModel):
    agent_id: UUID


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=200_000)
    metadata: dict = Field(default_factory=dict)

    check_content = field_validator("content")(_clean_message)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    swarm_id: UUID
    sender_type: str
    sender_id: UUID | None
    content: str
    metadata: dict = Field(validation_alias="meta")
    is_signed: bool = False
    created_at: datetime

    @classmethod
    def from_model(cls, message) -> "MessageResponse":
        response = cls.model_validate(message)
        response.is_signed = message.signature is not None
        return response


class ContextBlockCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=1, max_length=100_000)
    priority: PriorityName = "medium"
    shared: bool = True

    @field_validator("name", "content")
    @classmethod
    def strip_unsafe(cls, v: str) -> str:
        v = sanitize_text(v)
        if not v:
            raise ValueError("cannot be empty")
        return v


class ContextBlockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    swarm_id: UUID
    name: str
    content: str
    priority: str
    shared: bool
    created_at: datetime


class RespondRequest(BaseModel):
    """Body of POST /swarms/{id}/respond."""
    message: str = Field(min_length=1, max_length=200_000)
    agent_id: UUID | None = None
    human_mode: HumanModeName | None = None
    max_tokens: int = Field(2048, ge=1, le=8192)
    temperature: float = Field(0.7, ge=0.0, le=2.0)

    check_message = field_validator("message")(_clean_message)
