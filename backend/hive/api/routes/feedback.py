"""Feedback Routes: product feedback, NPS survey answers and admin aggregates."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user, get_optional_user, require_admin
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.schemas.feedback import FeedbackCreate, NPSCreate
from hive.services.feedback import FeedbackService

router = APIRouter(prefix="/api/v1/feedback", tags=["feedback"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackCreate,
    request: Request,
    user: Profile | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Anonymous submissions are accepted; user_id is set when a valid token is sent."""
    feedback = await FeedbackService(db).submit(
        body, user.id if user else None, request.headers.get("user-agent"),
    )
    return {
        "success": True,
        "feedback_id": str(feedback.id),
        "message": "Thank you for your feedback!",
    }


@router.post("/nps", status_code=status.HTTP_201_CREATED)
async def submit_nps(
    body: NPSCreate,
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    response = await FeedbackService(db).submit_nps(body, user.id)
    return {
        "success": True,
        "nps_id": str(response.id),
        "message": "Thank you for your feedback!",
    }


@router.get("/stats")
async def feedback_stats(
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await FeedbackService(db).stats()
