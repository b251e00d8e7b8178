"""Integration Service: per-user LLM provider API keys.

Invariants:
    - Keys are write-only through the API: responses expose a masked hint only
    - get_api_key returns None when the user has no active key for the provider
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.errors import ResourceNotFoundError
from hive.models.integration import Integration


def key_hint(api_key: str | None) -> str:
    if not api_key:
        return ""
    return f"...{api_key[-4:]}" if len(api_key) > 8 else "****"


class IntegrationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, user_id: uuid.UUID, provider: str) -> Integration | None:
        result = await self.db.execute(
            select(Integration).where(
                Integration.user_id == user_id, Integration.provider == provider,
            ),
        )
        return result.scalar_one_or_none()

    async def list_owned(self, user_id: uuid.UUID) -> list[Integration]:
        result = await self.db.execute(
            select(Integration)
            .where(Integration.user_id == user_id)
            .order_by(Integration.provider),
        )
        return list(result.scalars().all())

    async def upsert(self, user_id: uuid.UUID, provider: str, api_key: str) -> Integration:
        row = await self._get(user_id, provider)
        if row is None:
            row = Integration(user_id=user_id, provider=provider)
            self.db.add(row)
        row.credentials = {"api_key": api_key}
        row.is_active = True
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def delete(self, user_id: uuid.UUID, provider: str) -> None:
        row = await self._get(user_id, provider)
        if row is None:
            raise ResourceNotFoundError("Integration", provider)
        await self.db.delete(row)
        await self.db.commit()

    async def get_api_key(self, user_id: uuid.UUID, provider: str) -> str | None:
        row = await self._get(user_id, provider)
        if row is None or not row.is_active:
            return None
        return (row.credentials or {}).get("api_key") or None
