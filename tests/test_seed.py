"""Tests for demo data seeding."""

from __future__ import annotations

import pytest

from cleancity.data.seed import DEMO_USERS, seed_demo_data
from cleancity.models.enums import UserRole
from cleancity.services.directory import ActorDirectory
from cleancity.services.lifecycle import ComplaintLifecycleEngine
from cleancity.services.repository import InMemoryComplaintRepository


class _NoStorage:
    async def store(self, upload):
        raise AssertionError("demo complaint has no photo")

    async def discard(self, path):
        pass


@pytest.fixture
def directory() -> ActorDirectory:
    return ActorDirectory()


@pytest.fixture
def engine(directory: ActorDirectory) -> ComplaintLifecycleEngine:
    return ComplaintLifecycleEngine(directory, InMemoryComplaintRepository(), _NoStorage())


class TestSeedDemoData:
    @pytest.mark.asyncio
    async def test_registers_every_role(self, directory, engine) -> None:
        users = await seed_demo_data(directory, engine)
        assert len(users) == len(DEMO_USERS)
        assert {u.role for u in users} == set(UserRole)
        assert await directory.count_by_role(UserRole.WORKER) == 2

    @pytest.mark.asyncio
    async def test_files_one_pending_complaint(self, directory, engine) -> None:
        await seed_demo_data(directory, engine)
        agent = (await directory.list_by_role(UserRole.AGENT))[0]
        complaints = await engine.list_for_actor(agent.id)
        assert len(complaints) == 1
        assert engine.audit.count(complaints[0].id) == 1

    @pytest.mark.asyncio
    async def test_rerun_is_harmless(self, directory, engine) -> None:
        first = await seed_demo_data(directory, engine)
        second = await seed_demo_data(directory, engine)
        assert [u.id for u in first] == [u.id for u in second]
        assert len(await directory.list_all()) == len(DEMO_USERS)
        assert engine.audit.count() == 1
