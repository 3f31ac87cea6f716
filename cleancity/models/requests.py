"""Per-operation input structs for the complaint lifecycle.

Each transition takes its own explicit model; nothing is looked up by
string key once a request has crossed the API boundary.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from cleancity.models.enums import Priority


class NewComplaint(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    address: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    priority: Priority = Priority.MEDIUM


class AssignmentRequest(BaseModel):
    worker_id: str = Field(..., min_length=1)


class VerificationRequest(BaseModel):
    approved: bool
    feedback: str | None = Field(default=None, max_length=500)


class FeedbackRequest(BaseModel):
    """Citizen rating of a resolved complaint.

    ``rating`` is range-checked by the lifecycle engine so that an out of
    range value surfaces as an invalid-argument error rather than a
    request-shape error.
    """

    feedback: str | None = Field(default=None, max_length=500)
    rating: int
