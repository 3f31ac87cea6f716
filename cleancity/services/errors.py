"""Error kinds raised by the complaint core.

Every failure a caller can see belongs to exactly one stable kind so that
the HTTP layer can map it to a distinct status code:

* ``not_found``        -- complaint or user id does not resolve (404)
* ``unauthorized``     -- role or ownership mismatch (403)
* ``invalid_argument`` -- well-formed input that breaks a business rule (400)
* ``conflict``         -- current state forbids the action, or a concurrent
  transition committed first (409)

Usage::

    from cleancity.services.errors import NotFoundError

    raise NotFoundError(resource="Complaint", resource_id=complaint_id)
"""

from __future__ import annotations

from typing import ClassVar


class LifecycleError(Exception):
    """Base class for all domain errors surfaced to callers."""

    kind: ClassVar[str] = "error"
    status_code: ClassVar[int] = 500


class NotFoundError(LifecycleError):
    """Raised when a complaint or user id does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Complaint", "User").
        resource_id: The id that was looked up.
    """

    kind = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" not found with id: {resource_id}"
        else:
            msg += " not found"
        super().__init__(msg)


class UnauthorizedError(LifecycleError):
    """Raised when the actor's role or ownership does not permit the action."""

    kind = "unauthorized"
    status_code = 403


class InvalidArgumentError(LifecycleError):
    """Raised when input is well-formed but violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown.
    """

    kind = "invalid_argument"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(LifecycleError):
    """Raised when an operation collides with the current stored state."""

    kind = "conflict"
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when the complaint's current status does not allow the action."""

    def __init__(self, complaint_id: str, action: str, current: str, reason: str | None = None) -> None:
        msg = f"Cannot '{action}' complaint {complaint_id} (status={current})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.complaint_id = complaint_id
        self.action = action
        self.current_status = current
        self.reason = reason


class StaleStateError(ConflictError):
    """Raised when a commit is based on a version that is no longer current."""

    def __init__(self, complaint_id: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"Complaint {complaint_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.complaint_id = complaint_id
        self.expected_version = expected_version
        self.actual_version = actual_version
