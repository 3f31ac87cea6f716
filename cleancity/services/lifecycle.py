"""Complaint Lifecycle Engine -- the role-gated complaint state machine.

States::

    PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED -> VERIFIED
                  ^                           |
                  +------- rejected ----------+

Every operation follows the same unit of work, serialised per complaint:

1. Resolve the acting user and check their role.
2. Load the complaint and check ownership (assigned worker / citizen).
3. Check that the current status allows the action.
4. Hand any photos to file storage.
5. Commit the new state together with exactly one activity entry.

Any failure in steps 1-5 leaves the complaint and its activity log exactly
as they were; photos stored in step 4 for a commit that then fails are
discarded again.  Each operation returns a :class:`TransitionResult`
carrying the committed complaint *and* the single activity entry the
transition appended.

Usage::

    engine = ComplaintLifecycleEngine(directory, repository, storage)
    result = await engine.assign(agent_id, complaint_id, AssignmentRequest(worker_id=w))
    result.complaint.status   # ComplaintStatus.ASSIGNED
    result.entry.action       # ActivityAction.ASSIGNED
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Final

import structlog

from cleancity.models.activity import ActivityLog, ActivityLogView
from cleancity.models.complaint import Complaint, ComplaintView, ImageUpload
from cleancity.models.enums import ActivityAction, ComplaintStatus, UserRole
from cleancity.models.requests import (
    AssignmentRequest,
    FeedbackRequest,
    NewComplaint,
    VerificationRequest,
)
from cleancity.models.user import User
from cleancity.services.audit import AuditLog
from cleancity.services.errors import (
    InvalidArgumentError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    UnauthorizedError,
)
from cleancity.services.storage import validate_image

if TYPE_CHECKING:
    from cleancity.services.directory import ActorDirectory
    from cleancity.services.repository import ComplaintRepository
    from cleancity.services.storage import FileStorage

logger = structlog.get_logger(__name__)

_ONE_TICK: Final[timedelta] = timedelta(microseconds=1)
_MIN_RATING: Final[int] = 1
_MAX_RATING: Final[int] = 5


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Transition:
    """One edge of the lifecycle graph, keyed by the activity it records.

    ``target`` of ``None`` means the action attaches data without moving
    the complaint to another status.
    """

    role: UserRole
    sources: frozenset[ComplaintStatus]
    target: ComplaintStatus | None


TRANSITIONS: Final[dict[ActivityAction, Transition]] = {
    ActivityAction.CREATED: Transition(
        role=UserRole.CITIZEN,
        sources=frozenset(),
        target=ComplaintStatus.PENDING,
    ),
    ActivityAction.ASSIGNED: Transition(
        role=UserRole.AGENT,
        sources=frozenset({ComplaintStatus.PENDING}),
        target=ComplaintStatus.ASSIGNED,
    ),
    ActivityAction.STARTED: Transition(
        role=UserRole.WORKER,
        sources=frozenset({ComplaintStatus.ASSIGNED}),
        target=ComplaintStatus.IN_PROGRESS,
    ),
    ActivityAction.COMPLETED: Transition(
        role=UserRole.WORKER,
        sources=frozenset({ComplaintStatus.IN_PROGRESS}),
        target=ComplaintStatus.COMPLETED,
    ),
    ActivityAction.VERIFIED: Transition(
        role=UserRole.AGENT,
        sources=frozenset({ComplaintStatus.COMPLETED}),
        target=ComplaintStatus.VERIFIED,
    ),
    ActivityAction.REJECTED: Transition(
        role=UserRole.AGENT,
        sources=frozenset({ComplaintStatus.COMPLETED}),
        target=ComplaintStatus.ASSIGNED,
    ),
    # Feedback is also allowed on a non-verified complaint once it has been
    # through a rejection cycle; see ``_feedback_allowed``.
    ActivityAction.FEEDBACK: Transition(
        role=UserRole.CITIZEN,
        sources=frozenset({ComplaintStatus.VERIFIED}),
        target=None,
    ),
}


def _feedback_allowed(status: ComplaintStatus, rejections: int) -> bool:
    return status in TRANSITIONS[ActivityAction.FEEDBACK].sources or rejections > 0


def reconstruct_status_walk(entries: Iterable[ActivityLog]) -> list[ComplaintStatus]:
    """Replay an activity trail (oldest first) into its status sequence.

    Raises :class:`InvalidTransitionError` as soon as an entry does not
    correspond to an edge of the lifecycle graph.
    """
    walk: list[ComplaintStatus] = []
    rejections = 0
    for entry in entries:
        rule = TRANSITIONS[entry.action]
        if not walk:
            if entry.action != ActivityAction.CREATED:
                raise InvalidTransitionError(
                    entry.complaint_id, entry.action, "<none>", "trail must start with CREATED"
                )
            walk.append(ComplaintStatus.PENDING)
            continue

        current = walk[-1]
        if entry.action == ActivityAction.FEEDBACK:
            if not _feedback_allowed(current, rejections):
                raise InvalidTransitionError(entry.complaint_id, entry.action, current)
            continue
        if entry.action == ActivityAction.CREATED or current not in rule.sources:
            raise InvalidTransitionError(
                entry.complaint_id, entry.action, current, "not an edge of the lifecycle graph"
            )
        if entry.action == ActivityAction.REJECTED:
            rejections += 1
        walk.append(rule.target)
    return walk


# ---------------------------------------------------------------------------
# Role-scoped listing
# ---------------------------------------------------------------------------


def _citizen_listing(complaints: list[Complaint], actor: User) -> list[Complaint]:
    return [c for c in complaints if c.citizen_id == actor.id]


def _worker_listing(complaints: list[Complaint], actor: User) -> list[Complaint]:
    return [c for c in complaints if c.assigned_worker_id == actor.id]


def _agent_listing(complaints: list[Complaint], actor: User) -> list[Complaint]:
    return complaints


_LISTINGS: Final[dict[UserRole, Callable[[list[Complaint], User], list[Complaint]]]] = {
    UserRole.CITIZEN: _citizen_listing,
    UserRole.WORKER: _worker_listing,
    UserRole.AGENT: _agent_listing,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TransitionResult:
    """Committed complaint state plus the one activity entry it produced."""

    complaint: Complaint
    entry: ActivityLog


def _utcnow() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _logged_denial(operation: str, actor_id: str, complaint_id: str | None) -> Iterator[None]:
    try:
        yield
    except LifecycleError as exc:
        logger.warning(
            "lifecycle.transition_denied",
            operation=operation,
            actor_id=actor_id,
            complaint_id=complaint_id,
            kind=exc.kind,
            reason=str(exc),
        )
        raise


class ComplaintLifecycleEngine:
    """Applies role-gated lifecycle transitions to complaints.

    Parameters
    ----------
    directory:
        Resolves actor ids to users and roles.
    repository:
        Complaint store; commits state and activity entries together.
    storage:
        Receives complaint photos and returns opaque paths.
    clock:
        Source of "now"; defaults to UTC wall-clock time.
    max_upload_bytes:
        Size limit applied to every photo before it reaches storage.
    """

    __slots__ = (
        "_clock",
        "_directory",
        "_locks",
        "_max_upload_bytes",
        "_repository",
        "_storage",
        "_waiters",
    )

    def __init__(
        self,
        directory: ActorDirectory,
        repository: ComplaintRepository,
        storage: FileStorage,
        *,
        clock: Callable[[], datetime] | None = None,
        max_upload_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        self._directory = directory
        self._repository = repository
        self._storage = storage
        self._clock = clock or _utcnow
        self._max_upload_bytes = max_upload_bytes
        self._locks: dict[str, asyncio.Lock] = {}
        # Tasks holding or waiting on each lock; a lock is dropped at zero.
        self._waiters: dict[str, int] = {}

    @property
    def audit(self) -> AuditLog:
        return self._repository.audit

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def create(
        self,
        actor_id: str,
        data: NewComplaint,
        image: ImageUpload | None = None,
    ) -> TransitionResult:
        """File a new complaint as a citizen.  +1 ``CREATED`` entry."""
        with _logged_denial("create", actor_id, None):
            citizen = await self._actor(actor_id, UserRole.CITIZEN)
            if image is not None:
                validate_image(image, max_bytes=self._max_upload_bytes)

            now = self._clock()
            complaint = Complaint(
                title=data.title,
                description=data.description,
                address=data.address,
                latitude=data.latitude,
                longitude=data.longitude,
                priority=data.priority,
                citizen_id=citizen.id,
                status=TRANSITIONS[ActivityAction.CREATED].target,
                created_at=now,
                updated_at=now,
            )
            entry = AuditLog.entry(
                ActivityAction.CREATED,
                "Complaint submitted by citizen",
                complaint_id=complaint.id,
                user_id=citizen.id,
                at=now,
            )

            stored_paths = await self._store_images({"image_path": image})
            complaint = complaint.model_copy(update=stored_paths)
            try:
                saved = await self._repository.add(complaint, entry)
            except BaseException:
                await self._discard(stored_paths.values())
                raise

        logger.info(
            "lifecycle.created",
            complaint_id=saved.id,
            citizen_id=citizen.id,
            priority=saved.priority,
            has_image=saved.image_path is not None,
        )
        return TransitionResult(complaint=saved, entry=entry)

    async def assign(
        self,
        actor_id: str,
        complaint_id: str,
        request: AssignmentRequest,
    ) -> TransitionResult:
        """Assign a pending complaint to a worker.  +1 ``ASSIGNED`` entry."""
        with _logged_denial("assign", actor_id, complaint_id):
            agent = await self._actor(actor_id, UserRole.AGENT)
            async with self._lock_for(complaint_id):
                complaint = await self._repository.get(complaint_id)
                worker = await self._directory.resolve(request.worker_id)
                if worker.role != UserRole.WORKER:
                    raise InvalidArgumentError(
                        "Assigned user must be a worker",
                        details={"worker_id": worker.id, "role": worker.role},
                    )
                self._require_source(complaint, ActivityAction.ASSIGNED)

                now = self._tick(complaint)
                read_version = complaint.version
                complaint.status = ComplaintStatus.ASSIGNED
                complaint.assigned_worker_id = worker.id
                complaint.assigned_at = now
                result = await self._commit(
                    complaint,
                    ActivityAction.ASSIGNED,
                    f"Complaint assigned to worker: {worker.name}",
                    agent,
                    now,
                    read_version,
                )

        logger.info(
            "lifecycle.assigned",
            complaint_id=complaint_id,
            agent_id=agent.id,
            worker_id=worker.id,
            status=result.complaint.status,
        )
        return result

    async def start(self, actor_id: str, complaint_id: str) -> TransitionResult:
        """Assigned worker begins work.  +1 ``STARTED`` entry."""
        with _logged_denial("start", actor_id, complaint_id):
            worker = await self._actor(actor_id, UserRole.WORKER)
            async with self._lock_for(complaint_id):
                complaint = await self._repository.get(complaint_id)
                self._require_assignee(complaint, worker)
                self._require_source(complaint, ActivityAction.STARTED)

                now = self._tick(complaint)
                read_version = complaint.version
                complaint.status = ComplaintStatus.IN_PROGRESS
                result = await self._commit(
                    complaint,
                    ActivityAction.STARTED,
                    "Work started on complaint",
                    worker,
                    now,
                    read_version,
                )

        logger.info(
            "lifecycle.started",
            complaint_id=complaint_id,
            worker_id=worker.id,
            status=result.complaint.status,
        )
        return result

    async def complete(
        self,
        actor_id: str,
        complaint_id: str,
        *,
        before_image: ImageUpload | None = None,
        after_image: ImageUpload | None = None,
    ) -> TransitionResult:
        """Assigned worker finishes work, optionally with photos.  +1 ``COMPLETED`` entry.

        Each photo slot can be filled only once over the complaint's life;
        supplying a photo for a slot that already holds one is rejected.
        """
        with _logged_denial("complete", actor_id, complaint_id):
            worker = await self._actor(actor_id, UserRole.WORKER)
            async with self._lock_for(complaint_id):
                complaint = await self._repository.get(complaint_id)
                self._require_assignee(complaint, worker)
                self._require_source(complaint, ActivityAction.COMPLETED)

                slots = {"before_image_path": before_image, "after_image_path": after_image}
                for slot, upload in slots.items():
                    if upload is None:
                        continue
                    if getattr(complaint, slot) is not None:
                        raise InvalidArgumentError(
                            f"{slot.removesuffix('_path').replace('_', ' ')} already recorded",
                            details={"slot": slot},
                        )
                    validate_image(upload, max_bytes=self._max_upload_bytes)

                now = self._tick(complaint)
                read_version = complaint.version
                stored_paths = await self._store_images(slots)
                for slot, path in stored_paths.items():
                    setattr(complaint, slot, path)
                complaint.status = ComplaintStatus.COMPLETED
                complaint.completed_at = now
                try:
                    result = await self._commit(
                        complaint,
                        ActivityAction.COMPLETED,
                        _completion_details(stored_paths),
                        worker,
                        now,
                        read_version,
                    )
                except BaseException:
                    await self._discard(stored_paths.values())
                    raise

        logger.info(
            "lifecycle.completed",
            complaint_id=complaint_id,
            worker_id=worker.id,
            photos=sorted(stored_paths),
            status=result.complaint.status,
        )
        return result

    async def verify(
        self,
        actor_id: str,
        complaint_id: str,
        request: VerificationRequest,
    ) -> TransitionResult:
        """Agent approves or rejects completed work.

        Approval moves the complaint to ``VERIFIED`` (+1 ``VERIFIED`` entry).
        Rejection sends it back to ``ASSIGNED`` with the same worker, who
        must redo the work; earlier photos and timestamps are kept
        (+1 ``REJECTED`` entry).
        """
        action = ActivityAction.VERIFIED if request.approved else ActivityAction.REJECTED
        with _logged_denial("verify", actor_id, complaint_id):
            agent = await self._actor(actor_id, UserRole.AGENT)
            async with self._lock_for(complaint_id):
                complaint = await self._repository.get(complaint_id)
                self._require_source(complaint, action)

                now = self._tick(complaint)
                read_version = complaint.version
                complaint.status = TRANSITIONS[action].target
                if request.approved:
                    complaint.verified_at = now
                else:
                    complaint.rejection_count += 1
                details = request.feedback or f"Complaint {action.lower()} by agent"
                result = await self._commit(complaint, action, details, agent, now, read_version)

        logger.info(
            "lifecycle.verified" if request.approved else "lifecycle.rejected",
            complaint_id=complaint_id,
            agent_id=agent.id,
            status=result.complaint.status,
        )
        return result

    async def submit_feedback(
        self,
        actor_id: str,
        complaint_id: str,
        request: FeedbackRequest,
    ) -> TransitionResult:
        """Owning citizen rates the outcome.  +1 ``FEEDBACK`` entry, no status change."""
        with _logged_denial("feedback", actor_id, complaint_id):
            citizen = await self._actor(actor_id, UserRole.CITIZEN)
            async with self._lock_for(complaint_id):
                complaint = await self._repository.get(complaint_id)
                if complaint.citizen_id != citizen.id:
                    raise UnauthorizedError(
                        "Citizen can only provide feedback for their own complaints"
                    )
                if not _MIN_RATING <= request.rating <= _MAX_RATING:
                    raise InvalidArgumentError(
                        f"Rating must be between {_MIN_RATING} and {_MAX_RATING}",
                        details={"rating": request.rating},
                    )
                if not _feedback_allowed(complaint.status, complaint.rejection_count):
                    raise InvalidTransitionError(
                        complaint.id,
                        "feedback",
                        complaint.status,
                        "feedback opens once the work has been verified or rejected",
                    )

                now = self._tick(complaint)
                read_version = complaint.version
                complaint.feedback = request.feedback
                complaint.rating = request.rating
                result = await self._commit(
                    complaint,
                    ActivityAction.FEEDBACK,
                    f"Citizen provided feedback and rating: {request.rating}/5",
                    citizen,
                    now,
                    read_version,
                )

        logger.info(
            "lifecycle.feedback",
            complaint_id=complaint_id,
            citizen_id=citizen.id,
            rating=request.rating,
        )
        return result

    async def delete(self, actor_id: str, complaint_id: str) -> int:
        """Remove a complaint and its whole activity trail (agents only).

        Returns the number of activity entries removed with it.
        """
        with _logged_denial("delete", actor_id, complaint_id):
            agent = await self._actor(actor_id, UserRole.AGENT)
            async with self._lock_for(complaint_id):
                removed = await self._repository.delete(complaint_id)
        logger.info(
            "lifecycle.deleted",
            complaint_id=complaint_id,
            agent_id=agent.id,
            entries_removed=removed,
        )
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, complaint_id: str) -> Complaint:
        return await self._repository.get(complaint_id)

    async def list_for_actor(
        self,
        actor_id: str,
        *,
        status: ComplaintStatus | None = None,
    ) -> list[Complaint]:
        """Complaints visible to the actor's role, newest first."""
        actor = await self._directory.resolve(actor_id)
        complaints = _LISTINGS[actor.role](await self._repository.snapshot(), actor)
        if status is not None:
            complaints = [c for c in complaints if c.status == status]
        return complaints

    async def list_by_status(self, status: ComplaintStatus) -> list[Complaint]:
        return [c for c in await self._repository.snapshot() if c.status == status]

    async def history(self, complaint_id: str) -> list[ActivityLog]:
        """Activity entries for one complaint, newest first."""
        await self._repository.get(complaint_id)
        return self.audit.for_complaint(complaint_id)

    async def history_view(self, complaint_id: str) -> list[ActivityLogView]:
        entries = await self.history(complaint_id)
        users: dict[str, User | None] = {}
        views: list[ActivityLogView] = []
        for entry in entries:
            if entry.user_id not in users:
                users[entry.user_id] = await self._maybe_user(entry.user_id)
            user = users[entry.user_id]
            views.append(
                ActivityLogView(
                    **entry.model_dump(),
                    user_name=user.name if user else None,
                    user_role=user.role if user else None,
                )
            )
        return views

    async def view(self, complaint: Complaint) -> ComplaintView:
        citizen = await self._maybe_user(complaint.citizen_id)
        worker = (
            await self._maybe_user(complaint.assigned_worker_id)
            if complaint.assigned_worker_id
            else None
        )
        return ComplaintView.of(complaint, citizen=citizen, worker=worker)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _lock_for(self, complaint_id: str) -> AsyncIterator[None]:
        """Serialise work on one complaint without keeping idle locks around."""
        lock = self._locks.get(complaint_id)
        if lock is None:
            lock = self._locks[complaint_id] = asyncio.Lock()
        self._waiters[complaint_id] = self._waiters.get(complaint_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[complaint_id] - 1
            if remaining:
                self._waiters[complaint_id] = remaining
            else:
                del self._waiters[complaint_id]
                del self._locks[complaint_id]

    async def _actor(self, actor_id: str, role: UserRole) -> User:
        actor = await self._directory.resolve(actor_id)
        self._directory.require_role(actor, role)
        return actor

    async def _maybe_user(self, user_id: str) -> User | None:
        try:
            return await self._directory.resolve(user_id)
        except NotFoundError:
            return None

    def _tick(self, complaint: Complaint) -> datetime:
        """Current time, forced strictly past the complaint's last change."""
        return max(self._clock(), complaint.updated_at + _ONE_TICK)

    @staticmethod
    def _require_assignee(complaint: Complaint, worker: User) -> None:
        # No assignment at all is an authorisation failure, never a no-op.
        if complaint.assigned_worker_id is None or complaint.assigned_worker_id != worker.id:
            raise UnauthorizedError("Worker is not assigned to this complaint")

    @staticmethod
    def _require_source(complaint: Complaint, action: ActivityAction) -> None:
        if complaint.status not in TRANSITIONS[action].sources:
            raise InvalidTransitionError(complaint.id, action.lower(), complaint.status)

    async def _commit(
        self,
        complaint: Complaint,
        action: ActivityAction,
        details: str,
        actor: User,
        now: datetime,
        read_version: int,
    ) -> TransitionResult:
        complaint.updated_at = now
        entry = AuditLog.entry(
            action,
            details,
            complaint_id=complaint.id,
            user_id=actor.id,
            at=now,
        )
        saved = await self._repository.commit(complaint, entry, expected_version=read_version)
        return TransitionResult(complaint=saved, entry=entry)

    async def _store_images(self, slots: dict[str, ImageUpload | None]) -> dict[str, str]:
        """Store every supplied photo; on failure, discard what was stored and re-raise."""
        stored: dict[str, str] = {}
        try:
            for slot, upload in slots.items():
                if upload is not None:
                    stored[slot] = await self._storage.store(upload)
        except BaseException:
            logger.error("lifecycle.image_store_failed", slots=sorted(slots), exc_info=True)
            await self._discard(stored.values())
            raise
        return stored

    async def _discard(self, paths: Iterable[str]) -> None:
        for path in paths:
            try:
                await self._storage.discard(path)
            except Exception:
                logger.warning("lifecycle.image_discard_failed", path=path, exc_info=True)


def _completion_details(stored: dict[str, str]) -> str:
    if "before_image_path" in stored and "after_image_path" in stored:
        return "Work completed with before/after photos"
    if "after_image_path" in stored:
        return "Work completed with after photo"
    if "before_image_path" in stored:
        return "Work completed with before photo"
    return "Work completed"
