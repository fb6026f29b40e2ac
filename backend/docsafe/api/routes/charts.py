from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import get_identity
from docsafe.core.permissions import Identity
from docsafe.dependencies import get_db
from docsafe.services.stats import stats_service

router = APIRouter()


@router.get("")
async def chart_data(
    type: str = "daily",
    days: int = 30,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Time series for the caller's dashboard.

    `type` selects one series (`daily`, `hourly`, `status`) or `all`;
    anything else falls back to `daily`.
    """
    data = await stats_service.chart_data(db, identity, days=days)
    if type == "all":
        return data
    if type == "hourly":
        return data.hourly_activity
    if type == "status":
        return data.status_distribution
    return data.daily_activity
