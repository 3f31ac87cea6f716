"""Tests for the activity AuditLog and the in-memory complaint repository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from cleancity.models.complaint import Complaint
from cleancity.models.enums import ActivityAction, ComplaintStatus
from cleancity.services.audit import AuditLog
from cleancity.services.errors import NotFoundError, StaleStateError
from cleancity.services.repository import ComplaintRepository, InMemoryComplaintRepository

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def _complaint(created_at: datetime = T0, **overrides) -> Complaint:
    return Complaint(
        title="Litter",
        description="Plastic bags in the park",
        address="Central Park",
        latitude=1.0,
        longitude=2.0,
        citizen_id="citizen-1",
        created_at=created_at,
        updated_at=created_at,
        **overrides,
    )


def _entry(complaint_id: str, action: ActivityAction, at: datetime, user_id: str = "u1"):
    return AuditLog.entry(action, f"{action} happened", complaint_id=complaint_id, user_id=user_id, at=at)


# ---------------------------------------------------------------------------
# AuditLog
# ---------------------------------------------------------------------------


class TestAuditLog:
    def test_entry_truncates_details(self) -> None:
        entry = AuditLog.entry(
            ActivityAction.VERIFIED, "x" * 800, complaint_id="c", user_id="u", at=T0
        )
        assert len(entry.details) == 500

    def test_newest_first(self) -> None:
        log = AuditLog()
        log.append(_entry("c", ActivityAction.CREATED, T0))
        log.append(_entry("c", ActivityAction.ASSIGNED, T0 + timedelta(seconds=1)))
        assert [e.action for e in log.for_complaint("c")] == [
            ActivityAction.ASSIGNED,
            ActivityAction.CREATED,
        ]
        assert [e.action for e in log.oldest_first("c")] == [
            ActivityAction.CREATED,
            ActivityAction.ASSIGNED,
        ]

    def test_timestamps_must_increase_per_complaint(self) -> None:
        log = AuditLog()
        log.append(_entry("c", ActivityAction.CREATED, T0))
        with pytest.raises(ValueError):
            log.append(_entry("c", ActivityAction.ASSIGNED, T0))
        assert log.count("c") == 1

    def test_other_complaints_are_independent(self) -> None:
        log = AuditLog()
        log.append(_entry("a", ActivityAction.CREATED, T0))
        log.append(_entry("b", ActivityAction.CREATED, T0))
        assert log.count() == 2

    def test_for_actor_and_remove(self) -> None:
        log = AuditLog()
        log.append(_entry("a", ActivityAction.CREATED, T0, user_id="alice"))
        log.append(_entry("b", ActivityAction.CREATED, T0, user_id="bob"))
        log.append(_entry("a", ActivityAction.ASSIGNED, T0 + timedelta(seconds=1), user_id="agent"))

        assert len(log.for_actor("alice")) == 1
        assert log.remove_complaint("a") == 2
        assert [e.complaint_id for e in log.all()] == ["b"]
        assert log.remove_complaint("a") == 0


# ---------------------------------------------------------------------------
# InMemoryComplaintRepository
# ---------------------------------------------------------------------------


@pytest.fixture
def repo() -> InMemoryComplaintRepository:
    return InMemoryComplaintRepository()


class TestRepository:
    def test_satisfies_protocol(self, repo: InMemoryComplaintRepository) -> None:
        assert isinstance(repo, ComplaintRepository)

    @pytest.mark.asyncio
    async def test_add_sets_first_version(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        saved = await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))
        assert saved.version == 1
        assert repo.audit.count(complaint.id) == 1

    @pytest.mark.asyncio
    async def test_get_returns_independent_copy(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))

        working = await repo.get(complaint.id)
        working.status = ComplaintStatus.VERIFIED
        assert (await repo.get(complaint.id)).status == ComplaintStatus.PENDING

    @pytest.mark.asyncio
    async def test_get_missing(self, repo: InMemoryComplaintRepository) -> None:
        with pytest.raises(NotFoundError, match="Complaint not found with id: nope"):
            await repo.get("nope")

    @pytest.mark.asyncio
    async def test_commit_bumps_version(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))

        working = await repo.get(complaint.id)
        working.status = ComplaintStatus.ASSIGNED
        t1 = T0 + timedelta(seconds=1)
        saved = await repo.commit(
            working, _entry(complaint.id, ActivityAction.ASSIGNED, t1), expected_version=1
        )
        assert saved.version == 2
        assert saved.status == ComplaintStatus.ASSIGNED

    @pytest.mark.asyncio
    async def test_stale_commit_writes_nothing(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))
        first = await repo.get(complaint.id)
        second = await repo.get(complaint.id)

        first.status = ComplaintStatus.ASSIGNED
        await repo.commit(
            first,
            _entry(complaint.id, ActivityAction.ASSIGNED, T0 + timedelta(seconds=1)),
            expected_version=1,
        )

        second.status = ComplaintStatus.ASSIGNED
        with pytest.raises(StaleStateError):
            await repo.commit(
                second,
                _entry(complaint.id, ActivityAction.ASSIGNED, T0 + timedelta(seconds=2)),
                expected_version=1,
            )
        assert repo.audit.count(complaint.id) == 2
        assert (await repo.get(complaint.id)).version == 2

    @pytest.mark.asyncio
    async def test_refused_audit_append_leaves_state(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))
        working = await repo.get(complaint.id)
        working.status = ComplaintStatus.ASSIGNED

        with pytest.raises(ValueError):
            await repo.commit(
                working, _entry(complaint.id, ActivityAction.ASSIGNED, T0), expected_version=1
            )
        assert (await repo.get(complaint.id)).status == ComplaintStatus.PENDING

    @pytest.mark.asyncio
    async def test_delete_cascades(self, repo: InMemoryComplaintRepository) -> None:
        complaint = _complaint()
        await repo.add(complaint, _entry(complaint.id, ActivityAction.CREATED, T0))
        assert await repo.delete(complaint.id) == 1
        assert repo.audit.count() == 0
        with pytest.raises(NotFoundError):
            await repo.delete(complaint.id)

    @pytest.mark.asyncio
    async def test_snapshot_newest_first(self, repo: InMemoryComplaintRepository) -> None:
        older = _complaint(T0)
        newer = _complaint(T0 + timedelta(hours=1))
        await repo.add(older, _entry(older.id, ActivityAction.CREATED, T0))
        await repo.add(newer, _entry(newer.id, ActivityAction.CREATED, T0))
        assert [c.id for c in await repo.snapshot()] == [newer.id, older.id]
