"""Webhook Routes: subscription CRUD, delivery history and test deliveries.

Invariants:
    - The secret is returned on create and on rotate_secret, never on reads
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user, get_webhook_client
from hive.infrastructure.database import get_db
from hive.infrastructure.webhook_client import WebhookClient
from hive.models.profile import Profile
from hive.schemas.webhook import (
    WebhookCreate, WebhookDeliveryResponse, WebhookResponse, WebhookTestRequest,
    WebhookUpdate,
)
from hive.services.webhooks import WebhookService

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


def _public(webhook, reveal_secret: bool = False) -> WebhookResponse:
    response = WebhookResponse.model_validate(webhook)
    if not reveal_secret:
        response.secret = None
    return response


@router.post("", response_model=WebhookResponse, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    body: WebhookCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    webhook = await WebhookService(db).create(user, body)
    return _public(webhook, reveal_secret=True)


@router.get("", response_model=list[WebhookResponse])
async def list_webhooks(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [_public(w) for w in await WebhookService(db).list_owned(user)]


@router.post("/test")
async def test_webhook(
    body: WebhookTestRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client: WebhookClient = Depends(get_webhook_client),
):
    """Send one signed test delivery to a subscription or an ad-hoc URL."""
    return await WebhookService(db).send_test(user, body, client)


@router.get("/{webhook_id}", response_model=WebhookResponse)
async def get_webhook(
    webhook_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _public(await WebhookService(db).get_owned(webhook_id, user))


@router.patch("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    webhook_id: UUID,
    body: WebhookUpdate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    webhook = await WebhookService(db).update(webhook_id, user, body)
    return _public(webhook, reveal_secret=body.rotate_secret)


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_webhook(
    webhook_id: UUID,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await WebhookService(db).delete(webhook_id, user)


@router.get("/{webhook_id}/deliveries", response_model=list[WebhookDeliveryResponse])
async def list_deliveries(
    webhook_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WebhookService(db).deliveries(webhook_id, user, limit)
