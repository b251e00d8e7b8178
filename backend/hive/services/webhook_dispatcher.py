"""Webhook Dispatcher: turns queued WebhookEvents into signed HTTP deliveries.

Invariants:
    - An event is claimed (-> processing) with a conditional UPDATE before any delivery,
      so two dispatchers never deliver the same attempt
    - One WebhookDelivery row per (attempt, subscribed webhook)
    - After an attempt: every delivery succeeded (or nobody subscribed) -> completed;
      nothing succeeded and attempt_count >= max_attempts -> failed;
      otherwise -> pending with attempt_count + 1 and next_attempt_at = now + retry_delay
    - emit_event only flushes; the caller's commit publishes the event

Design Decisions:
    - Envelope {id, event, created_at, data} with data = {resource_type, resource_id, **payload}:
      subscribers get one stable shape for every event type
    - HTTP lives in WebhookClient (infrastructure/webhook_client.py); this module only
      decides what to send and records outcomes
"""

import json
import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.domain_types import WebhookEventStatus, ensure_utc, utcnow
from hive.core.errors import ConflictError, ResourceNotFoundError
from hive.core.webhook_signing import retry_delay, sign_payload
from hive.infrastructure.webhook_client import DeliveryResult, WebhookClient
from hive.models.webhook import Webhook, WebhookDelivery, WebhookEvent

logger = logging.getLogger(__name__)


async def emit_event(
    db: AsyncSession,
    user_id: uuid.UUID,
    event_type: str,
    resource_type: str,
    resource_id,
    payload: dict,
) -> WebhookEvent:
    """Queue an event for delivery on the next dispatcher run."""
    event = WebhookEvent(
        user_id=user_id,
        event_type=event_type,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        payload=payload,
        status=WebhookEventStatus.PENDING.value,
        next_attempt_at=utcnow(),
    )
    db.add(event)
    await db.flush()
    return event


def build_envelope(event: WebhookEvent) -> str:
    return json.dumps({
        "id": str(uuid.uuid4()),
        "event": event.event_type,
        "created_at": ensure_utc(event.created_at).isoformat(),
        "data": {
            "resource_type": event.resource_type,
            "resource_id": event.resource_id,
            **(event.payload or {}),
        },
    }, default=str)


class WebhookDispatcher:
    """Processes pending webhook events against a shared WebhookClient."""

    def __init__(self, db: AsyncSession, client: WebhookClient):
        self.db = db
        self.client = client

    async def process_pending(self, limit: int = 50, now: datetime | None = None) -> dict:
        now = now or utcnow()
        result = await self.db.execute(
            select(WebhookEvent.id)
            .where(
                WebhookEvent.status == WebhookEventStatus.PENDING.value,
                WebhookEvent.next_attempt_at <= now,
            )
            .order_by(WebhookEvent.created_at)
            .limit(limit),
        )
        event_ids = list(result.scalars().all())

        processed = successful = failed = total_deliveries = 0
        for event_id in event_ids:
            event = await self._claim(event_id, WebhookEventStatus.PENDING.value)
            if event is None:
                continue
            try:
                outcome = await self._process_event(event, now)
            except Exception as e:
                # One broken event must not stall the batch; it goes back to the queue
                logger.error(f"Error processing webhook event {event_id}: {e}", exc_info=True)
                await self._release(event_id, str(e))
                failed += 1
                continue
            processed += 1
            total_deliveries += outcome["deliveries"]
            if outcome["status"] == WebhookEventStatus.COMPLETED.value:
                successful += 1
            else:
                failed += 1

        logger.info(
            f"Webhook dispatch: {processed} events, {total_deliveries} deliveries",
        )
        return {
            "success": True,
            "processed": processed,
            "successful": successful,
            "failed": failed,
            "total_deliveries": total_deliveries,
        }

    async def process_single(self, event_id: uuid.UUID, now: datetime | None = None) -> dict:
        existing = await self.db.get(WebhookEvent, event_id)
        if existing is None:
            raise ResourceNotFoundError("Webhook event", str(event_id))
        event = await self._claim(event_id, None)
        if event is None:
            raise ConflictError("Event already processing")
        outcome = await self._process_event(event, now or utcnow())
        return {
            "success": outcome["status"] == WebhookEventStatus.COMPLETED.value,
            "event_id": str(event_id),
            "status": outcome["status"],
            "deliveries": outcome["deliveries"],
        }

    async def _claim(self, event_id: uuid.UUID, expected_status: str | None) -> WebhookEvent | None:
        condition = (
            WebhookEvent.status == expected_status if expected_status
            else WebhookEvent.status != WebhookEventStatus.PROCESSING.value
        )
        result = await self.db.execute(
            update(WebhookEvent)
            .where(WebhookEvent.id == event_id, condition)
            .values(status=WebhookEventStatus.PROCESSING.value)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        if result.rowcount != 1:
            return None
        event = await self.db.get(WebhookEvent, event_id)
        await self.db.refresh(event)
        return event

    async def _release(self, event_id: uuid.UUID, error: str) -> None:
        await self.db.rollback()
        await self.db.execute(
            update(WebhookEvent)
            .where(WebhookEvent.id == event_id)
            .values(status=WebhookEventStatus.PENDING.value, last_error=error[:1000])
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()

    async def _subscribers(self, event: WebhookEvent) -> list[Webhook]:
        result = await self.db.execute(
            select(Webhook).where(
                Webhook.user_id == event.user_id, Webhook.is_active.is_(True),
            ),
        )
        return [w for w in result.scalars().all() if event.event_type in (w.events or [])]

    async def _process_event(self, event: WebhookEvent, now: datetime) -> dict:
        webhooks = await self._subscribers(event)
        body = build_envelope(event)

        results: list[DeliveryResult] = []
        for webhook in webhooks:
            result = await self.client.deliver(
                webhook.url, body, self._headers(webhook, event, body),
            )
            results.append(result)
            self.db.add(WebhookDelivery(
                webhook_id=webhook.id,
                event_id=event.id,
                event_type=event.event_type,
                payload=json.loads(body),
                response_status=result.status_code,
                response_body=result.response_body,
                duration_ms=result.duration_ms,
                success=result.success,
                error_message=result.error_message,
                attempt_number=event.attempt_count,
            ))

        succeeded = sum(1 for r in results if r.success)
        first_error = next((r.error_message for r in results if not r.success), None)
        exhausted = event.attempt_count >= event.max_attempts
        if succeeded == len(results):
            event.status = WebhookEventStatus.COMPLETED.value
            event.completed_at = now
            event.last_error = None
        elif exhausted:
            # Partial success on the last attempt still closes the event
            event.status = (
                WebhookEventStatus.FAILED.value if succeeded == 0
                else WebhookEventStatus.COMPLETED.value
            )
            event.completed_at = now
            event.last_error = first_error
        else:
            event.last_error = first_error
            event.next_attempt_at = now + retry_delay(event.attempt_count)
            event.attempt_count += 1
            event.status = WebhookEventStatus.PENDING.value
        await self.db.commit()

        logger.info(
            f"Webhook event {event.id} -> {event.status} "
            f"({succeeded}/{len(results)} deliveries ok)",
            extra={"event_type": event.event_type, "attempt": event.attempt_count},
        )
        return {"status": event.status, "deliveries": len(results)}

    @staticmethod
    def _headers(webhook: Webhook, event: WebhookEvent, body: str) -> dict[str, str]:
        headers = {
            "X-Webhook-ID": str(webhook.id),
            "X-Event-Type": event.event_type,
            "X-Event-ID": str(event.id),
            "X-Delivery-Attempt": str(event.attempt_count),
        }
        if webhook.secret:
            headers["X-Webhook-Signature"] = sign_payload(body, webhook.secret)
        return headers
