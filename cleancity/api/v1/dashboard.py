"""Dashboard statistics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from cleancity.api.deps import current_actor, get_stats
from cleancity.models.stats import DashboardStats
from cleancity.models.user import User
from cleancity.services.stats import StatsAggregator

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats, response_model_exclude_none=True)
async def get_dashboard_stats(
    actor: User = Depends(current_actor),
    stats: StatsAggregator = Depends(get_stats),
) -> DashboardStats:
    """Counters for the caller's role, computed fresh on every request."""
    return await stats.for_actor(actor.id)
