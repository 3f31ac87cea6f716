"""Complaint lifecycle API endpoints for CleanCity v1.

Each transition endpoint is a thin adapter: it turns the HTTP request
into the matching input struct, calls the lifecycle engine, and returns
the updated complaint projection.  Domain errors are translated to
status codes by :mod:`cleancity.api.errors`.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, ValidationError

from cleancity.api.deps import current_actor, get_engine
from cleancity.models.activity import ActivityLogView
from cleancity.models.complaint import ComplaintView, ImageUpload
from cleancity.models.enums import ComplaintStatus, Priority
from cleancity.models.requests import (
    AssignmentRequest,
    FeedbackRequest,
    NewComplaint,
    VerificationRequest,
)
from cleancity.models.user import User
from cleancity.services.lifecycle import ComplaintLifecycleEngine

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/complaints", tags=["complaints"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ComplaintPage(BaseModel):
    """Paginated list of complaints."""

    complaints: list[ComplaintView]
    total: int
    page: int
    page_size: int


class DeleteResponse(BaseModel):
    complaint_id: str
    entries_removed: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_upload(upload: UploadFile | None) -> ImageUpload | None:
    """Convert an optional multipart file; an empty part counts as absent."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    if not data:
        return None
    return ImageUpload(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post("", response_model=ComplaintView, status_code=201)
async def create_complaint(
    title: str = Form(...),
    description: str = Form(...),
    address: str = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    priority: Priority = Form(Priority.MEDIUM),
    image: UploadFile | None = File(default=None),
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    """File a new complaint (citizens only), optionally with a photo."""
    try:
        data = NewComplaint(
            title=title,
            description=description,
            address=address,
            latitude=latitude,
            longitude=longitude,
            priority=priority,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from None

    result = await engine.create(actor.id, data, await _read_upload(image))
    return await engine.view(result.complaint)


@router.put("/{complaint_id}/assign", response_model=ComplaintView)
async def assign_worker(
    complaint_id: str,
    body: AssignmentRequest,
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    result = await engine.assign(actor.id, complaint_id, body)
    return await engine.view(result.complaint)


@router.put("/{complaint_id}/start", response_model=ComplaintView)
async def start_work(
    complaint_id: str,
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    result = await engine.start(actor.id, complaint_id)
    return await engine.view(result.complaint)


@router.put("/{complaint_id}/complete", response_model=ComplaintView)
async def complete_work(
    complaint_id: str,
    before_image: UploadFile | None = File(default=None),
    after_image: UploadFile | None = File(default=None),
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    """Mark work done, optionally attaching before/after photos."""
    result = await engine.complete(
        actor.id,
        complaint_id,
        before_image=await _read_upload(before_image),
        after_image=await _read_upload(after_image),
    )
    return await engine.view(result.complaint)


@router.put("/{complaint_id}/verify", response_model=ComplaintView)
async def verify_completion(
    complaint_id: str,
    body: VerificationRequest,
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    result = await engine.verify(actor.id, complaint_id, body)
    return await engine.view(result.complaint)


@router.put("/{complaint_id}/feedback", response_model=ComplaintView)
async def submit_feedback(
    complaint_id: str,
    body: FeedbackRequest,
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    result = await engine.submit_feedback(actor.id, complaint_id, body)
    return await engine.view(result.complaint)


@router.delete("/{complaint_id}", response_model=DeleteResponse)
async def delete_complaint(
    complaint_id: str,
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> DeleteResponse:
    removed = await engine.delete(actor.id, complaint_id)
    return DeleteResponse(complaint_id=complaint_id, entries_removed=removed)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("", response_model=ComplaintPage)
async def list_complaints(
    status: ComplaintStatus | None = Query(default=None, description="Filter by status"),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Results per page"),
    actor: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintPage:
    """Complaints visible to the caller's role, newest first.

    Citizens see their own complaints, workers see what is assigned to
    them, and agents see everything.
    """
    complaints = await engine.list_for_actor(actor.id, status=status)
    start = (page - 1) * page_size
    page_items = complaints[start:start + page_size]
    return ComplaintPage(
        complaints=[await engine.view(c) for c in page_items],
        total=len(complaints),
        page=page,
        page_size=page_size,
    )


@router.get("/{complaint_id}", response_model=ComplaintView)
async def get_complaint(
    complaint_id: str,
    _: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> ComplaintView:
    return await engine.view(await engine.get(complaint_id))


@router.get("/{complaint_id}/logs", response_model=list[ActivityLogView])
async def get_activity_logs(
    complaint_id: str,
    _: User = Depends(current_actor),
    engine: ComplaintLifecycleEngine = Depends(get_engine),
) -> list[ActivityLogView]:
    """Activity history of a complaint, newest first."""
    return await engine.history_view(complaint_id)
