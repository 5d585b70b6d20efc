"""
Console Router

Read-only endpoints for the dashboard UI:
- Current maintenance state (banner)
- Current system stats (admin panel)
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from opsconsole.services import ConsoleServices

router = APIRouter()


# ============================================
# SCHEMAS
# ============================================

class MaintenanceResponse(BaseModel):
    """Maintenance banner state."""
    maintenance: Optional[dict[str, Any]]
    loading: bool
    active: bool


class StatsResponse(BaseModel):
    """Stats panel state."""
    stats: Optional[dict[str, Any]]
    loading: bool
    error: Optional[str]
    fetchedAt: Optional[str] = None


# ============================================
# DEPENDENCIES
# ============================================

def get_services(request: Request) -> ConsoleServices:
    """Services container attached to the app at startup."""
    return request.app.state.services


# ============================================
# ENDPOINTS
# ============================================

@router.get("/maintenance", response_model=MaintenanceResponse)
async def get_maintenance(services: ConsoleServices = Depends(get_services)):
    """
    Current maintenance state.

    Never fails: while the remote store is unreachable this reports
    "no maintenance".
    """
    channel = services.maintenance
    snapshot = channel.snapshot
    return MaintenanceResponse(
        maintenance=snapshot.to_dict() if snapshot else None,
        loading=channel.loading,
        active=snapshot.is_active if snapshot else False,
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(services: ConsoleServices = Depends(get_services)):
    """Latest stats poll result; stats is null whenever the last poll failed."""
    return StatsResponse(**services.stats.state.to_dict())


@router.post("/stats/refresh", response_model=StatsResponse)
async def refresh_stats(services: ConsoleServices = Depends(get_services)):
    """Poll the stats backend now instead of waiting for the next tick."""
    state = await services.stats.refresh()
    return StatsResponse(**state.to_dict())
