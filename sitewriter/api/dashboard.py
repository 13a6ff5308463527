from typing import Optional

from fastapi import APIRouter, Depends, Query

from sitewriter.api.deps import get_dashboard
from sitewriter.features.dashboard.service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def dashboard_stats(dashboard: DashboardService = Depends(get_dashboard)):
    return await dashboard.stats()


@router.get("/activity")
async def dashboard_activity(
    window: Optional[int] = Query(7, description="7, 30 or 90 days; omit with all=true"),
    type: Optional[str] = Query(None, description="note | post | story | photo"),
    all: bool = Query(False, description="Ignore the date window"),
    dashboard: DashboardService = Depends(get_dashboard),
):
    entries = await dashboard.activity(window=None if all else window, kind=type)
    return {"items": entries}
