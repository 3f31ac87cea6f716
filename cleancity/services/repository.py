"""Complaint persistence.

:class:`ComplaintRepository` is the contract the lifecycle engine relies
on; :class:`InMemoryComplaintRepository` is the process-local
implementation used by the API and the tests.

A commit stores the new complaint state *and* its activity entry as one
unit, guarded by an optimistic version check: if the stored version no
longer matches the version the caller read, nothing is written and
:class:`~cleancity.services.errors.StaleStateError` is raised.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from cleancity.models.activity import ActivityLog
from cleancity.models.complaint import Complaint
from cleancity.services.audit import AuditLog
from cleancity.services.errors import ConflictError, NotFoundError, StaleStateError

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Repository protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ComplaintRepository(Protocol):
    """Async complaint store interface."""

    @property
    def audit(self) -> AuditLog: ...

    async def get(self, complaint_id: str) -> Complaint: ...

    async def add(self, complaint: Complaint, entry: ActivityLog) -> Complaint: ...

    async def commit(self, complaint: Complaint, entry: ActivityLog, *, expected_version: int) -> Complaint: ...

    async def delete(self, complaint_id: str) -> int: ...

    async def snapshot(self) -> list[Complaint]: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryComplaintRepository:
    """Dict-backed complaint store sharing one :class:`AuditLog`.

    Reads hand out copies so a caller can mutate its working copy freely;
    only :meth:`add` and :meth:`commit` change stored state.  Neither
    method awaits between its version check and its writes, so each runs
    atomically with respect to other coroutines on the event loop.
    """

    __slots__ = ("_audit", "_complaints")

    def __init__(self, audit: AuditLog | None = None) -> None:
        self._audit = audit if audit is not None else AuditLog()
        self._complaints: dict[str, Complaint] = {}

    @property
    def audit(self) -> AuditLog:
        return self._audit

    async def get(self, complaint_id: str) -> Complaint:
        stored = self._complaints.get(complaint_id)
        if stored is None:
            raise NotFoundError(resource="Complaint", resource_id=complaint_id)
        return stored.model_copy()

    async def add(self, complaint: Complaint, entry: ActivityLog) -> Complaint:
        if complaint.id in self._complaints:
            raise ConflictError(f"Complaint {complaint.id} already exists")
        stored = complaint.model_copy(update={"version": 1})
        self._audit.append(entry)
        self._complaints[stored.id] = stored
        return stored.model_copy()

    async def commit(
        self,
        complaint: Complaint,
        entry: ActivityLog,
        *,
        expected_version: int,
    ) -> Complaint:
        current = self._complaints.get(complaint.id)
        if current is None:
            raise NotFoundError(resource="Complaint", resource_id=complaint.id)
        if current.version != expected_version:
            logger.warning(
                "repository.stale_commit",
                complaint_id=complaint.id,
                expected_version=expected_version,
                actual_version=current.version,
            )
            raise StaleStateError(complaint.id, expected_version, current.version)

        stored = complaint.model_copy(update={"version": current.version + 1})
        # Audit first: if the append is refused, the complaint is untouched.
        self._audit.append(entry)
        self._complaints[stored.id] = stored
        return stored.model_copy()

    async def delete(self, complaint_id: str) -> int:
        if self._complaints.pop(complaint_id, None) is None:
            raise NotFoundError(resource="Complaint", resource_id=complaint_id)
        return self._audit.remove_complaint(complaint_id)

    async def snapshot(self) -> list[Complaint]:
        """Copies of every stored complaint, newest first."""
        return sorted(
            (c.model_copy() for c in self._complaints.values()),
            key=lambda c: c.created_at,
            reverse=True,
        )
