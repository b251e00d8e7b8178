"""Template Schemas: team template CRUD, resolution and rendering.

Invariants:
    - override_fields only names inheritable fields
    - tags are trimmed, deduplicated (first wins) and capped at 20
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hive.core.template_inheritance import INHERITABLE_FIELDS
from hive.schemas.agent import FrameworkName, clean_name, clean_optional_text, clean_prompt

InheritanceModeName = Literal["inherit", "compose"]
PermissionLevelName = Literal["view", "use", "edit"]


def _clean_tags(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    seen: list[str] = []
    for tag in v:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen[:20]


def _check_overrides(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    unknown = [f for f in v if f not in INHERITABLE_FIELDS]
    if unknown:
        raise ValueError(f"not inheritable: {', '.join(unknown)}")
    return list(dict.fromkeys(v))


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    role: str | None = Field(None, max_length=200)
    framework: FrameworkName = "anthropic"
    system_prompt: str | None = Field(None, max_length=200_000)
    description: str | None = Field(None, max_length=2000)
    tags: list[str] = Field(default_factory=list)
    category: str = Field("general", min_length=1, max_length=50)
    icon: str = Field("Bot", min_length=1, max_length=50)
    settings: dict | None = None
    permission_level: PermissionLevelName = "use"
    parent_template_id: UUID | None = None
    override_fields: list[str] = Field(default_factory=list)
    inheritance_mode: InheritanceModeName = "inherit"
    is_public: bool = False

    check_name = field_validator("name")(clean_name)
    check_text = field_validator("role", "description")(clean_optional_text)
    check_prompt = field_validator("system_prompt")(clean_prompt)
    check_tags = field_validator("tags")(_clean_tags)
    check_overrides = field_validator("override_fields")(_check_overrides)


class TemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    role: str | None = Field(None, max_length=200)
    framework: FrameworkName | None = None
    system_prompt: str | None = Field(None, max_length=200_000)
    description: str | None = Field(None, max_length=2000)
    tags: list[str] | None = None
    category: str | None = Field(None, min_length=1, max_length=50)
    icon: str | None = Field(None, min_length=1, max_length=50)
    settings: dict | None = None
    permission_level: PermissionLevelName | None = None
    parent_template_id: UUID | None = None
    override_fields: list[str] | None = None
    inheritance_mode: InheritanceModeName | None = None
    is_public: bool | None = None

    check_name = field_validator("name")(clean_name)
    check_text = field_validator("role", "description")(clean_optional_text)
    check_prompt = field_validator("system_prompt")(clean_prompt)
    check_tags = field_validator("tags")(_clean_tags)
    check_overrides = field_validator("override_fields")(_check_overrides)


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    slug: str
    role: str | None
    framework: str
    system_prompt: str | None
    description: str | None
    tags: list[str]
    category: str
    icon: str
    settings: dict | None
    permission_level: str
    parent_template_id: UUID | None
    override_fields: list[str]
    inheritance_mode: str
    is_public: bool
    created_at: datetime
    updated_at: datetime


class TemplateRenderRequest(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)
