"""Webhook Service: subscription CRUD, delivery history and one-off test deliveries.

Invariants:
    - Webhooks are owner-scoped; foreign ids answer 404
    - A secret is generated (64 hex chars) when none is supplied; it is only echoed on
      create and rotation
    - Test deliveries are signed `t=<unix>,v1=<hmac>` over "<t>.<body>" and are recorded
      as a WebhookDelivery only when they were sent to the stored webhook's own URL
"""

import json
import logging
import secrets
import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import utcnow
from hive.core.errors import ResourceNotFoundError
from hive.core.webhook_signing import sign_timestamped
from hive.infrastructure.webhook_client import WebhookClient
from hive.models.profile import Profile
from hive.models.webhook import Webhook, WebhookDelivery
from hive.schemas.webhook import WebhookCreate, WebhookTestRequest, WebhookUpdate

logger = logging.getLogger(__name__)

TEST_WEBHOOK_ID = "test"


def generate_secret() -> str:
    return secrets.token_hex(32)


class WebhookService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_owned(self, webhook_id: uuid.UUID, user: Profile) -> Webhook:
        result = await self.db.execute(
            select(Webhook).where(Webhook.id == webhook_id, Webhook.user_id == user.id),
        )
        webhook = result.scalar_one_or_none()
        if webhook is None:
            raise ResourceNotFoundError("Webhook", str(webhook_id))
        return webhook

    async def list_owned(self, user: Profile) -> list[Webhook]:
        result = await self.db.execute(
            select(Webhook).where(Webhook.user_id == user.id).order_by(Webhook.created_at),
        )
        return list(result.scalars().all())

    async def create(self, user: Profile, body: WebhookCreate) -> Webhook:
        webhook = Webhook(
            user_id=user.id, name=body.name, url=body.url, events=body.events,
            secret=body.secret or generate_secret(), is_active=body.is_active,
        )
        self.db.add(webhook)
        await self.db.commit()
        await self.db.refresh(webhook)
        logger.info(f"Webhook created: {webhook.id}")
        return webhook

    async def update(self, webhook_id: uuid.UUID, user: Profile, body: WebhookUpdate) -> Webhook:
        webhook = await self.get_owned(webhook_id, user)
        changes = body.model_dump(exclude_unset=True, exclude_none=True)
        if changes.pop("rotate_secret", False):
            webhook.secret = generate_secret()
        for name, value in changes.items():
            setattr(webhook, name, value)
        await self.db.commit()
        await self.db.refresh(webhook)
        return webhook

    async def delete(self, webhook_id: uuid.UUID, user: Profile) -> None:
        webhook = await self.get_owned(webhook_id, user)
        await self.db.execute(
            delete(WebhookDelivery).where(WebhookDelivery.webhook_id == webhook.id),
        )
        await self.db.delete(webhook)
        await self.db.commit()

    async def deliveries(
        self, webhook_id: uuid.UUID, user: Profile, limit: int = 50,
    ) -> list[WebhookDelivery]:
        webhook = await self.get_owned(webhook_id, user)
        result = await self.db.execute(
            select(WebhookDelivery)
            .where(WebhookDelivery.webhook_id == webhook.id)
            .order_by(WebhookDelivery.created_at.desc())
            .limit(limit),
        )
        return list(result.scalars().all())

    async def send_test(
        self, user: Profile, body: WebhookTestRequest, client: WebhookClient,
        now: datetime | None = None,
    ) -> dict:
        now = now or utcnow()
        webhook = None
        if body.webhook_id is not None:
            webhook = await self.get_owned(body.webhook_id, user)
        url = body.url or webhook.url
        secret = body.secret or (webhook.secret if webhook else None)
        # An override URL makes this an ad-hoc delivery, not part of the webhook history
        if webhook is not None and url != webhook.url:
            webhook = None

        payload = body.payload or {
            "message": "This is a test webhook delivery",
            "timestamp": now.isoformat(),
        }
        payload_string = json.dumps(payload)
        headers = {
            "X-Webhook-Event": body.event_type,
            "X-Webhook-ID": str(webhook.id) if webhook else TEST_WEBHOOK_ID,
        }
        if secret:
            headers["X-Webhook-Signature"] = sign_timestamped(
                payload_string, secret, int(now.timestamp()),
            )

        result = await client.deliver(url, payload_string, headers)
        if webhook is not None:
            self.db.add(WebhookDelivery(
                webhook_id=webhook.id,
                event_type=body.event_type,
                payload=payload,
                response_status=result.status_code,
                response_body=result.response_body,
                duration_ms=result.duration_ms,
                success=result.success,
                error_message=result.error_message,
                attempt_number=1,
            ))
            await self.db.commit()

        return {
            "success": result.success,
            "response_status": result.status_code,
            "response_body": result.response_body,
            "duration_ms": result.duration_ms,
            "error": result.error_message,
        }
