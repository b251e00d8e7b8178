"""Feedback Service: feedback and NPS submission plus admin statistics."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hive.core.stats import nps_summary
from hive.models.feedback import Feedback, NPSResponse
from hive.schemas.feedback import FeedbackCreate, NPSCreate

logger = logging.getLogger(__name__)


class FeedbackService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit(
        self, body: FeedbackCreate, user_id: uuid.UUID | None, user_agent: str | None,
    ) -> Feedback:
        feedback = Feedback(
            user_id=user_id,
            type=body.type,
            subject=body.subject,
            message=body.message,
            screenshot_url=body.screenshot_url,
            page_url=body.page_url,
            user_agent=(user_agent or "")[:512] or None,
            meta=body.metadata,
        )
        self.db.add(feedback)
        await self.db.commit()
        logger.info(f"Feedback submitted: {feedback.type}")
        return feedback

    async def submit_nps(self, body: NPSCreate, user_id: uuid.UUID) -> NPSResponse:
        response = NPSResponse(
            user_id=user_id, score=body.score, comment=body.comment, trigger=body.trigger,
        )
        self.db.add(response)
        await self.db.commit()
        return response

    async def stats(self) -> dict:
        async def grouped(column) -> dict[str, int]:
            result = await self.db.execute(
                select(column, func.count(Feedback.id)).group_by(column),
            )
            return {key: count for key, count in result.all()}

        by_status = await grouped(Feedback.status)
        by_type = await grouped(Feedback.type)
        scores = await self.db.execute(select(NPSResponse.score))
        return {
            "feedback": {
                "total": sum(by_status.values()),
                "by_status": by_status,
                "by_type": by_type,
            },
            "nps": nps_summary(list(scores.scalars().all())),
        }
