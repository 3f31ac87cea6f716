from __future__ import annotations

from pydantic import BaseModel

from cleancity.models.enums import UserRole


class DashboardStats(BaseModel):
    """Per-role dashboard counters.

    Only the fields belonging to the caller's role are populated; the rest
    stay ``None`` and are dropped from API responses.
    """

    role: UserRole | None = None

    # Agent view
    total_complaints: int | None = None
    pending_complaints: int | None = None
    assigned_complaints: int | None = None
    in_progress_complaints: int | None = None
    completed_complaints: int | None = None
    verified_complaints: int | None = None
    status_breakdown: dict[str, int] | None = None
    priority_breakdown: dict[str, int] | None = None

    # Worker view
    assigned_tasks: int | None = None
    completed_tasks: int | None = None
    pending_tasks: int | None = None

    # Citizen view (``pending_complaints`` is shared with the agent view)
    my_complaints: int | None = None
    resolved_complaints: int | None = None
