from cleancity.models.activity import ActivityLog, ActivityLogView
from cleancity.models.complaint import Complaint, ComplaintView, ImageUpload
from cleancity.models.enums import (
    ActivityAction,
    ComplaintStatus,
    Priority,
    UserRole,
)
from cleancity.models.requests import (
    AssignmentRequest,
    FeedbackRequest,
    NewComplaint,
    VerificationRequest,
)
from cleancity.models.stats import DashboardStats
from cleancity.models.user import User, UserRegistration, UserView

__all__ = [
    "ActivityAction",
    "ActivityLog",
    "ActivityLogView",
    "AssignmentRequest",
    "Complaint",
    "ComplaintStatus",
    "ComplaintView",
    "DashboardStats",
    "FeedbackRequest",
    "ImageUpload",
    "NewComplaint",
    "Priority",
    "User",
    "UserRegistration",
    "UserRole",
    "UserView",
    "VerificationRequest",
]
