"""Message Signature Service: sign, verify and report on stored messages.

Invariants:
    - Only messages in swarms the caller can read are signed or verified
    - is_valid is False for unsigned messages and for content altered after signing
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import ensure_utc, utcnow
from hive.core.errors import ResourceNotFoundError
from hive.core.message_signing import content_hash, sign_message, verify_message
from hive.models.message import Message
from hive.models.profile import Profile
from hive.models.swarm import Swarm


class MessageSignatureService:

    def __init__(self, db: AsyncSession, secret: str):
        self.db = db
        self.secret = secret

    def apply_signature(self, message: Message) -> None:
        message.signature = sign_message(
            message.id, message.swarm_id, message.sender_type, message.content, self.secret,
        )
        message.content_hash = content_hash(message.content)
        message.signed_at = utcnow()

    def is_valid(self, message: Message) -> bool:
        return verify_message(
            message.id, message.swarm_id, message.sender_type, message.content,
            message.signature, message.content_hash, self.secret,
        )

    async def get_readable(self, message_id: uuid.UUID, user: Profile) -> Message:
        result = await self.db.execute(
            select(Message, Swarm)
            .join(Swarm, Swarm.id == Message.swarm_id)
            .where(Message.id == message_id),
        )
        row = result.first()
        if row is None:
            raise ResourceNotFoundError("Message", str(message_id))
        message, swarm = row
        if swarm.user_id != user.id and swarm.visibility != "public":
            raise ResourceNotFoundError("Message", str(message_id))
        return message

    async def sign(self, message_id: uuid.UUID, user: Profile) -> dict:
        message = await self.get_readable(message_id, user)
        self.apply_signature(message)
        await self.db.commit()
        return {
            "success": True,
            "message_id": str(message.id),
            "signature": message.signature,
            "content_hash": message.content_hash,
            "signed_at": ensure_utc(message.signed_at).isoformat(),
        }

    def describe(self, message: Message) -> dict:
        return {
            "message_id": str(message.id),
            "is_signed": message.signature is not None,
            "is_valid": self.is_valid(message),
            "signed_at": (
                ensure_utc(message.signed_at).isoformat() if message.signed_at else None
            ),
        }

    async def verify(self, message_ids: list[uuid.UUID], user: Profile) -> list[dict]:
        results = []
        for message_id in message_ids:
            message = await self.get_readable(message_id, user)
            results.append(self.describe(message))
        return results
