"""Message Signature Routes: sign and verify stored swarm messages."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.config import Settings, get_settings
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.message_signature import SignRequest, VerifyRequest
from hive.services.message_signatures import MessageSignatureService

router = APIRouter(prefix="/api/v1/messages", tags=["message-signatures"])


@router.post("/sign")
async def sign_message(
    body: SignRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    service = MessageSignatureService(db, settings.message_signing_secret)
    return await service.sign(body.message_id, user)


@router.post("/verify")
async def verify_messages(
    body: VerifyRequest,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    service = MessageSignatureService(db, settings.message_signing_secret)
    if body.message_ids:
        results = await service.verify(body.message_ids, user)
        return {
            "results": results,
            "all_valid": all(r["is_valid"] for r in results),
        }
    [result] = await service.verify([body.message_id], user)
    return result


@router.get("/status")
async def signature_status(
    message_id: UUID = Query(...),
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    service = MessageSignatureService(db, settings.message_signing_secret)
    return service.describe(await service.get_readable(message_id, user))
