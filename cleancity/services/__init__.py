"""CleanCity service layer -- actor directory, audit log, lifecycle engine, stats.

All services are process-local and import-safe; persistence and photo
storage are reached only through the :class:`ComplaintRepository` and
:class:`FileStorage` contracts.
"""

from __future__ import annotations

from cleancity.services.audit import AuditLog
from cleancity.services.directory import ActorDirectory
from cleancity.services.errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    StaleStateError,
    UnauthorizedError,
)
from cleancity.services.lifecycle import (
    TRANSITIONS,
    ComplaintLifecycleEngine,
    TransitionResult,
    reconstruct_status_walk,
)
from cleancity.services.repository import ComplaintRepository, InMemoryComplaintRepository
from cleancity.services.stats import StatsAggregator, compute_stats
from cleancity.services.storage import FileStorage, LocalFileStorage, validate_image

__all__ = [
    "TRANSITIONS",
    "ActorDirectory",
    "AuditLog",
    "ComplaintLifecycleEngine",
    "ComplaintRepository",
    "ConflictError",
    "FileStorage",
    "InMemoryComplaintRepository",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "LifecycleError",
    "LocalFileStorage",
    "NotFoundError",
    "StaleStateError",
    "StatsAggregator",
    "TransitionResult",
    "UnauthorizedError",
    "compute_stats",
    "reconstruct_status_walk",
]
