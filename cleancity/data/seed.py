"""Demo data for local development.

Registers one actor per role plus a second worker, and files a sample
complaint so the dashboard has something to show.  Runs once at startup
when ``CLEANCITY_SEED_DEMO_DATA`` is enabled; actors whose email is
already registered are left alone, so re-running is harmless.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog

from cleancity.models.enums import Priority, UserRole
from cleancity.models.requests import NewComplaint
from cleancity.models.user import User, UserRegistration

if TYPE_CHECKING:
    from cleancity.services.directory import ActorDirectory
    from cleancity.services.lifecycle import ComplaintLifecycleEngine

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Demo actors
# ---------------------------------------------------------------------------

DEMO_USERS: Final[tuple[UserRegistration, ...]] = (
    UserRegistration(
        name="Asha Citizen",
        email="citizen@cleancity.local",
        phone="+1-555-0100",
        role=UserRole.CITIZEN,
    ),
    UserRegistration(
        name="Ravi Worker",
        email="worker@cleancity.local",
        phone="+1-555-0101",
        role=UserRole.WORKER,
    ),
    UserRegistration(
        name="Meera Worker",
        email="worker2@cleancity.local",
        role=UserRole.WORKER,
    ),
    UserRegistration(
        name="Field Agent",
        email="agent@cleancity.local",
        role=UserRole.AGENT,
    ),
)

DEMO_COMPLAINT: Final[NewComplaint] = NewComplaint(
    title="Overflowing garbage bin",
    description="The public bin at the corner has not been emptied for a week.",
    address="12 Market Street",
    latitude=28.6139,
    longitude=77.2090,
    priority=Priority.HIGH,
)


async def seed_demo_users(directory: ActorDirectory) -> list[User]:
    """Register the demo actors, returning every demo user (new or existing)."""
    users: list[User] = []
    for registration in DEMO_USERS:
        existing = await directory.find_by_email(registration.email)
        if existing is not None:
            users.append(existing)
            continue
        users.append(await directory.register(registration))
    logger.info("seed.users_ready", count=len(users))
    return users


async def seed_demo_data(
    directory: ActorDirectory,
    engine: ComplaintLifecycleEngine,
) -> list[User]:
    """Seed demo actors and, if the citizen has none yet, one complaint."""
    users = await seed_demo_users(directory)
    citizen = next(u for u in users if u.role == UserRole.CITIZEN)
    if not await engine.list_for_actor(citizen.id):
        result = await engine.create(citizen.id, DEMO_COMPLAINT)
        logger.info("seed.complaint_filed", complaint_id=result.complaint.id)
    return users
