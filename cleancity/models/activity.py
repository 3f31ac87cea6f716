"""Activity log entries: the append-only history of a complaint."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from cleancity.models.enums import ActivityAction, UserRole


class ActivityLog(BaseModel):
    """A single immutable record of one action taken on a complaint."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: uuid4().hex)
    action: ActivityAction
    details: str = Field(default="", max_length=500)
    complaint_id: str
    user_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ActivityLogView(BaseModel):
    """Activity entry joined with the acting user's name and role."""

    id: str
    action: ActivityAction
    details: str
    complaint_id: str
    user_id: str
    user_name: str | None = None
    user_role: UserRole | None = None
    created_at: datetime
