"""Actor Directory -- resolves user ids to roles and activity status.

Authentication and password handling live outside this service; the
directory only knows who exists, what role they hold, and whether they
are active.  Inactivity is advisory: it hides a user from role listings
(e.g. the worker picker) but never blocks a transition.
"""

from __future__ import annotations

import asyncio

import structlog

from cleancity.models.enums import UserRole
from cleancity.models.user import User, UserRegistration
from cleancity.services.errors import ConflictError, NotFoundError, UnauthorizedError

logger = structlog.get_logger(__name__)


class ActorDirectory:
    """In-process user registry.

    Users are kept in insertion order; email addresses are unique
    (case-insensitive).
    """

    __slots__ = ("_by_email", "_lock", "_users")

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._by_email: dict[str, str] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Registration and status
    # ------------------------------------------------------------------

    async def register(self, registration: UserRegistration) -> User:
        """Create a new user; fails with a conflict if the email is taken."""
        email_key = registration.email.strip().lower()
        async with self._lock:
            if email_key in self._by_email:
                raise ConflictError(f"User with email {registration.email} already exists")
            user = User(
                name=registration.name,
                email=registration.email.strip(),
                phone=registration.phone,
                role=registration.role,
                credential=registration.credential,
            )
            self._users[user.id] = user
            self._by_email[email_key] = user.id

        logger.info("directory.user_registered", user_id=user.id, role=user.role)
        return user

    async def activate(self, user_id: str) -> User:
        return await self._set_active(user_id, True)

    async def deactivate(self, user_id: str) -> User:
        return await self._set_active(user_id, False)

    async def _set_active(self, user_id: str, active: bool) -> User:
        async with self._lock:
            user = self._get(user_id)
            user.is_active = active
        logger.info("directory.user_status_changed", user_id=user_id, is_active=active)
        return user

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def resolve(self, user_id: str) -> User:
        """Return the user with *user_id* or raise :class:`NotFoundError`."""
        return self._get(user_id)

    async def find_by_email(self, email: str) -> User | None:
        user_id = self._by_email.get(email.strip().lower())
        return self._users.get(user_id) if user_id else None

    async def list_all(self) -> list[User]:
        return list(self._users.values())

    async def list_by_role(self, role: UserRole, *, active_only: bool = False) -> list[User]:
        return [
            u for u in self._users.values()
            if u.role == role and (u.is_active or not active_only)
        ]

    async def count_by_role(self, role: UserRole) -> int:
        return sum(1 for u in self._users.values() if u.role == role)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def require_role(user: User, role: UserRole) -> None:
        if user.role != role:
            raise UnauthorizedError(f"Action requires role {role}, user {user.id} is {user.role}")

    @staticmethod
    def is_active(user: User) -> bool:
        return user.is_active

    def _get(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(resource="User", resource_id=user_id)
        return user
