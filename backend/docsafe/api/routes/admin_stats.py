from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import require
from docsafe.core.permissions import Capability, Identity
from docsafe.dependencies import get_db
from docsafe.schemas.stats import AdminStatsResponse
from docsafe.services.stats import stats_service

router = APIRouter()


@router.get("", response_model=AdminStatsResponse)
async def admin_stats(
    identity: Identity = Depends(require(Capability.VIEW_STATS)),
    db: AsyncSession = Depends(get_db),
):
    """System-wide snapshot for the admin dashboard."""
    return AdminStatsResponse(data=await stats_service.admin_stats(db))
