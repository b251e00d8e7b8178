"""Message Signature Schemas."""

from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class SignRequest(BaseModel):
    message_id: UUID


class VerifyRequest(BaseModel):
    message_id: UUID | None = None
    message_ids: list[UUID] | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def require_ids(self):
        if self.message_id is None and not self.message_ids:
            raise ValueError("message_id or message_ids is required")
        return self
