"""Complaint models.

A complaint is filed by exactly one citizen and moves through the
``PENDING -> ASSIGNED -> IN_PROGRESS -> COMPLETED -> VERIFIED`` lifecycle.
Title, description, address, coordinates, and the reporting citizen are
fixed at creation; everything else is workflow state owned by
:class:`~cleancity.services.lifecycle.ComplaintLifecycleEngine`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from cleancity.models.enums import ComplaintStatus, Priority
from cleancity.models.user import User


@dataclass(slots=True, frozen=True)
class ImageUpload:
    """Raw photo handed to the file storage collaborator."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class Complaint(BaseModel):
    """Persistent complaint record."""

    model_config = {"frozen": False}

    id: str = Field(default_factory=lambda: uuid4().hex)

    # ----------------------------------------------------------------
    # Fixed at creation
    # ----------------------------------------------------------------
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    address: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    citizen_id: str

    # ----------------------------------------------------------------
    # Workflow state
    # ----------------------------------------------------------------
    status: ComplaintStatus = ComplaintStatus.PENDING
    priority: Priority = Priority.MEDIUM
    assigned_worker_id: str | None = None
    image_path: str | None = None
    before_image_path: str | None = None
    after_image_path: str | None = None
    feedback: str | None = Field(default=None, max_length=500)
    rating: int | None = None
    rejection_count: int = 0

    # ----------------------------------------------------------------
    # Timestamps
    # ----------------------------------------------------------------
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    verified_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Bumped by the repository on every commit.
    version: int = 0


class ComplaintView(BaseModel):
    """Caller-facing projection of a complaint with actor names resolved."""

    id: str
    title: str
    description: str
    address: str
    latitude: float
    longitude: float
    status: ComplaintStatus
    priority: Priority
    image_path: str | None
    before_image_path: str | None
    after_image_path: str | None
    feedback: str | None
    rating: int | None
    rejection_count: int
    assigned_at: datetime | None
    completed_at: datetime | None
    verified_at: datetime | None
    created_at: datetime
    updated_at: datetime
    citizen_id: str
    citizen_name: str | None = None
    citizen_email: str | None = None
    assigned_worker_id: str | None = None
    assigned_worker_name: str | None = None

    @classmethod
    def of(
        cls,
        complaint: Complaint,
        *,
        citizen: User | None = None,
        worker: User | None = None,
    ) -> ComplaintView:
        data = complaint.model_dump(exclude={"version"})
        return cls(
            **data,
            citizen_name=citizen.name if citizen else None,
            citizen_email=citizen.email if citizen else None,
            assigned_worker_name=worker.name if worker else None,
        )
