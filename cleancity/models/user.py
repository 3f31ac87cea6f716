"""Actor models: the people who file, handle, and verify complaints."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from cleancity.models.enums import UserRole


class User(BaseModel):
    """A registered actor.

    ``role`` never changes after registration. ``is_active`` only affects
    who shows up in role listings; it does not invalidate assignments the
    user already holds.
    """

    model_config = {"frozen": False}

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=254)
    phone: str | None = Field(default=None, max_length=32)
    role: UserRole
    is_active: bool = True
    # Opaque to this service; issued and checked by the auth layer.
    credential: str | None = Field(default=None, exclude=True, repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class UserRegistration(BaseModel):
    """Request body for registering a new actor."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(default=None, max_length=32)
    role: UserRole
    credential: str | None = Field(default=None, max_length=500)


class UserView(BaseModel):
    """Public projection of a :class:`User` (no credential)."""

    id: str
    name: str
    email: str
    phone: str | None
    role: UserRole
    is_active: bool
    created_at: datetime

    @classmethod
    def of(cls, user: User) -> UserView:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
        )
