"""Feedback Schemas: product feedback and NPS survey submissions.

Invariants:
    - subject truncated to 200 chars, message to 5000, NPS comment to 1000 (never rejected
      for length)
    - NPS score is an integer 0..10
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from hive.core.sanitize import sanitize_text, sanitize_url


class FeedbackCreate(BaseModel):
    type: Literal["bug", "feature", "question", "other"]
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    screenshot_url: str | None = None
    page_url: str | None = None
    metadata: dict = Field(default_factory=dict)

    @field_validator("subject")
    @classmethod
    def truncate_subject(cls, v: str) -> str:
        v = sanitize_text(v)[:200]
        if not v:
            raise ValueError("subject cannot be empty")
        return v

    @field_validator("message")
    @classmethod
    def truncate_message(cls, v: str) -> str:
        v = sanitize_text(v)[:5000]
        if not v:
            raise ValueError("message cannot be empty")
        return v

    @field_validator("screenshot_url", "page_url")
    @classmethod
    def safe_url(cls, v: str | None) -> str | None:
        return sanitize_url(v) if v else None


class NPSCreate(BaseModel):
    score: int = Field(ge=0, le=10)
    comment: str | None = None
    trigger: str = Field("widget", min_length=1, max_length=50)

    @field_validator("comment")
    @classmethod
    def truncate_comment(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return sanitize_text(v)[:1000] or None
