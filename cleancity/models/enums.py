from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    __slots__ = ()

    CITIZEN = "CITIZEN"
    WORKER = "WORKER"
    AGENT = "AGENT"


class ComplaintStatus(StrEnum):
    """Lifecycle states of a complaint.

    ``PENDING`` is initial and ``VERIFIED`` is terminal. A rejected
    verification sends a ``COMPLETED`` complaint back to ``ASSIGNED``.
    """

    __slots__ = ()

    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    VERIFIED = "VERIFIED"


class Priority(StrEnum):
    __slots__ = ()

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ActivityAction(StrEnum):
    """Action vocabulary recorded in the activity log."""

    __slots__ = ()

    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    FEEDBACK = "FEEDBACK"
