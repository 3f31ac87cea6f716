"""Stats Aggregator -- per-role dashboard counters.

A pure read-side projection: every call takes a fresh snapshot of the
complaint store and counts it, so results always reflect the latest
committed state.  Each role has its own counting function; the single
:data:`_STATS_BY_ROLE` table picks the one for the caller.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from typing import TYPE_CHECKING, Final

import structlog

from cleancity.models.complaint import Complaint
from cleancity.models.enums import ComplaintStatus, Priority, UserRole
from cleancity.models.stats import DashboardStats

if TYPE_CHECKING:
    from cleancity.services.directory import ActorDirectory
    from cleancity.services.repository import ComplaintRepository

logger = structlog.get_logger(__name__)

_WORKER_DONE: Final[frozenset[ComplaintStatus]] = frozenset(
    {ComplaintStatus.COMPLETED, ComplaintStatus.VERIFIED}
)
_WORKER_OPEN: Final[frozenset[ComplaintStatus]] = frozenset(
    {ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS}
)
_CITIZEN_OPEN: Final[frozenset[ComplaintStatus]] = frozenset(
    {ComplaintStatus.PENDING, ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS}
)


# ---------------------------------------------------------------------------
# Per-role projections
# ---------------------------------------------------------------------------


def agent_stats(complaints: list[Complaint], user_id: str) -> DashboardStats:
    by_status = Counter(c.status for c in complaints)
    by_priority = Counter(c.priority for c in complaints)
    return DashboardStats(
        role=UserRole.AGENT,
        total_complaints=len(complaints),
        pending_complaints=by_status[ComplaintStatus.PENDING],
        assigned_complaints=by_status[ComplaintStatus.ASSIGNED],
        in_progress_complaints=by_status[ComplaintStatus.IN_PROGRESS],
        completed_complaints=by_status[ComplaintStatus.COMPLETED],
        verified_complaints=by_status[ComplaintStatus.VERIFIED],
        status_breakdown={s.value: by_status[s] for s in ComplaintStatus},
        priority_breakdown={p.value: by_priority[p] for p in Priority},
    )


def worker_stats(complaints: list[Complaint], user_id: str) -> DashboardStats:
    mine = [c for c in complaints if c.assigned_worker_id == user_id]
    return DashboardStats(
        role=UserRole.WORKER,
        assigned_tasks=len(mine),
        completed_tasks=sum(1 for c in mine if c.status in _WORKER_DONE),
        pending_tasks=sum(1 for c in mine if c.status in _WORKER_OPEN),
    )


def citizen_stats(complaints: list[Complaint], user_id: str) -> DashboardStats:
    mine = [c for c in complaints if c.citizen_id == user_id]
    return DashboardStats(
        role=UserRole.CITIZEN,
        my_complaints=len(mine),
        resolved_complaints=sum(1 for c in mine if c.status == ComplaintStatus.VERIFIED),
        pending_complaints=sum(1 for c in mine if c.status in _CITIZEN_OPEN),
    )


_STATS_BY_ROLE: Final[dict[UserRole, Callable[[list[Complaint], str], DashboardStats]]] = {
    UserRole.AGENT: agent_stats,
    UserRole.WORKER: worker_stats,
    UserRole.CITIZEN: citizen_stats,
}


def compute_stats(complaints: list[Complaint], user_id: str, role: UserRole | str) -> DashboardStats:
    """Dispatch to the projection for *role*; unknown roles get an empty result."""
    projection = _STATS_BY_ROLE.get(role)  # type: ignore[call-overload]
    if projection is None:
        return DashboardStats()
    return projection(complaints, user_id)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class StatsAggregator:
    """Computes dashboard counters for an actor on demand (never cached)."""

    __slots__ = ("_directory", "_repository")

    def __init__(self, directory: ActorDirectory, repository: ComplaintRepository) -> None:
        self._directory = directory
        self._repository = repository

    async def for_actor(self, actor_id: str) -> DashboardStats:
        actor = await self._directory.resolve(actor_id)
        stats = compute_stats(await self._repository.snapshot(), actor.id, actor.role)
        logger.debug("stats.computed", actor_id=actor.id, role=actor.role)
        return stats
