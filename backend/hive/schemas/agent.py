"""Agent Schemas: request/response contracts for agent CRUD.

Invariants:
    - name non-empty after sanitize_agent_name (max 100 chars)
    - system_prompt sanitized by sanitize_agent_prompt (max 100_000 chars)
    - tool names match ^[a-zA-Z][a-zA-Z0-9_-]*$
"""

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hive.core.sanitize import sanitize_agent_name, sanitize_agent_prompt, sanitize_text

FrameworkName = Literal["anthropic", "openai", "google"]

_TOOL_NAME = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


def clean_name(v: str | None) -> str | None:
    if v is None:
        return None
    v = sanitize_agent_name(v)
    if not v:
        raise ValueError("name cannot be empty")
    return v


def clean_optional_text(v: str | None) -> str | None:
    if v is None:
        return None
    return sanitize_text(v) or None


def clean_prompt(v: str | None) -> str | None:
    if v is None:
        return None
    return sanitize_agent_prompt(v) or None


def check_tool_names(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    for name in v:
        if not _TOOL_NAME.match(name):
            raise ValueError(f"invalid tool name: {name}")
    return v


class AgentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    role: str | None = Field(None, max_length=200)
    framework: FrameworkName = "anthropic"
    model: str | None = Field(None, max_length=100)
    system_prompt: str | None = Field(None, max_length=200_000)
    description: str | None = Field(None, max_length=2000)
    tools: list[str] | None = Field(None, max_length=50)
    settings: dict = Field(default_factory=dict)

    check_name = field_validator("name")(clean_name)
    check_text = field_validator("role", "description")(clean_optional_text)
    check_prompt = field_validator("system_prompt")(clean_prompt)
    check_tools = field_validator("tools")(check_tool_names)


class AgentUpdate(BaseModel):
    """Partial update: only fields present in the body are applied."""
    name: str | None = Field(None, min_length=1, max_length=200)
    role: str | None = Field(None, max_length=200)
    framework: FrameworkName | None = None
    model: str | None = Field(None, max_length=100)
    system_prompt: str | None = Field(None, max_length=200_000)
    description: str | None = Field(None, max_length=2000)
    tools: list[str] | None = Field(None, max_length=50)
    settings: dict | None = None
    is_active: bool | None = None

    check_name = field_validator("name")(clean_name)
    check_text = field_validator("role", "description")(clean_optional_text)
    check_prompt = field_validator("system_prompt")(clean_prompt)
    check_tools = field_validator("tools")(check_tool_names)


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    role: str | None
    framework: str
    model: str | None
    system_prompt: str | None
    description: str | None
    settings: dict
    is_active: bool
    created_at: datetime
    updated_at: datetime
