"""Append-only activity log for complaints.

Every legal lifecycle transition produces exactly one :class:`ActivityLog`
entry.  Entries are never modified; they are only removed together with
the complaint that owns them.  Within one complaint, entries must carry
strictly increasing ``created_at`` timestamps.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from cleancity.models.activity import ActivityLog
from cleancity.models.enums import ActivityAction

logger = structlog.get_logger(__name__)


class AuditLog:
    """Activity entries grouped by the complaint they document.

    Appends go through :meth:`append`, which the complaint repository calls
    inside the same commit that stores the new complaint state.
    """

    __slots__ = ("_by_complaint", "_sequence")

    def __init__(self) -> None:
        self._by_complaint: dict[str, list[ActivityLog]] = {}
        # Global append order, used for actor-scoped and full listings.
        self._sequence: list[ActivityLog] = []

    @staticmethod
    def entry(
        action: ActivityAction,
        details: str,
        *,
        complaint_id: str,
        user_id: str,
        at: datetime,
    ) -> ActivityLog:
        """Build (but do not store) an entry for a pending transition."""
        return ActivityLog(
            action=action,
            details=details[:500],
            complaint_id=complaint_id,
            user_id=user_id,
            created_at=at,
        )

    def append(self, entry: ActivityLog) -> ActivityLog:
        trail = self._by_complaint.setdefault(entry.complaint_id, [])
        if trail and entry.created_at <= trail[-1].created_at:
            raise ValueError(
                f"Activity timestamps must increase within complaint {entry.complaint_id}"
            )
        trail.append(entry)
        self._sequence.append(entry)
        logger.debug(
            "audit.appended",
            complaint_id=entry.complaint_id,
            action=entry.action,
            user_id=entry.user_id,
        )
        return entry

    def remove_complaint(self, complaint_id: str) -> int:
        """Drop every entry owned by *complaint_id*; returns how many went."""
        removed = self._by_complaint.pop(complaint_id, [])
        if removed:
            gone = {e.id for e in removed}
            self._sequence = [e for e in self._sequence if e.id not in gone]
        return len(removed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def for_complaint(self, complaint_id: str) -> list[ActivityLog]:
        """Entries for one complaint, newest first."""
        return list(reversed(self._by_complaint.get(complaint_id, [])))

    def oldest_first(self, complaint_id: str) -> list[ActivityLog]:
        return list(self._by_complaint.get(complaint_id, []))

    def for_actor(self, user_id: str) -> list[ActivityLog]:
        return [e for e in self._sequence if e.user_id == user_id]

    def all(self) -> list[ActivityLog]:
        return list(self._sequence)

    def count(self, complaint_id: str | None = None) -> int:
        if complaint_id is None:
            return len(self._sequence)
        return len(self._by_complaint.get(complaint_id, []))
