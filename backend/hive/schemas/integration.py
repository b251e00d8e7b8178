"""Integration Schemas: provider API keys (write-only)."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class IntegrationUpsert(BaseModel):
    api_key: str = Field(min_length=8, max_length=512)

    @field_validator("api_key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        v = v.strip()
        if not v or any(c.isspace() for c in v):
            raise ValueError("api_key must not contain whitespace")
        return v


class IntegrationResponse(BaseModel):
    provider: str
    is_active: bool
    key_hint: str
    created_at: datetime
    updated_at: datetime
