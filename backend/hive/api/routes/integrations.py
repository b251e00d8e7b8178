"""Integration Routes: per-provider API keys. Keys are write-only; reads return a hint."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.infrastructure.database import get_db
from hive.models.integration import Integration
from hive.models.profile import Profile
from hive.schemas.agent import FrameworkName
from hive.schemas.integration import IntegrationResponse, IntegrationUpsert
from hive.services.integrations import IntegrationService, key_hint

router = APIRouter(prefix="/api/v1/integrations", tags=["integrations"])


def _response(row: Integration) -> IntegrationResponse:
    return IntegrationResponse(
        provider=row.provider,
        is_active=row.is_active,
        key_hint=key_hint((row.credentials or {}).get("api_key")),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("", response_model=list[IntegrationResponse])
async def list_integrations(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [_response(row) for row in await IntegrationService(db).list_owned(user.id)]


@router.put("/{provider}", response_model=IntegrationResponse)
async def upsert_integration(
    provider: FrameworkName,
    body: IntegrationUpsert,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await IntegrationService(db).upsert(user.id, provider, body.api_key)
    return _response(row)


@router.delete("/{provider}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_integration(
    provider: FrameworkName,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await IntegrationService(db).delete(user.id, provider)
