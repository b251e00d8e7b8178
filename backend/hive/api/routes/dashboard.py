"""Dashboard Routes: per-user overview counters."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hive.api.dependencies import get_current_user
from hive.infrastructure.database import get_db
from hive.models.profile import Profile
from hive.services.stats import DashboardStats

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/stats")
async def dashboard_stats(
    user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DashboardStats(db).for_user(user.id)
