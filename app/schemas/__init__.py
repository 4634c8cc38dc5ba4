from app.schemas.user import StaffCreate, UserResponse
from app.schemas.complaint import (
    ComplaintCreate,
    StatusUpdate,
    FeedbackCreate,
    EscalationRequest,
    ComplaintResponse,
)

__all__ = [
    "StaffCreate",
    "UserResponse",
    "ComplaintCreate",
    "StatusUpdate",
    "FeedbackCreate",
    "EscalationRequest",
    "ComplaintResponse",
]
