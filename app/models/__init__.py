from app.models.complaint import (
    Complaint,
    ComplaintAssignee,
    ComplaintStatus,
    Department,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
    NORMAL_CATEGORY,
)
from app.models.user import User, UserRole
from app.models.notification import Notification, NotificationType, NotificationChannel, NotificationStatus

__all__ = [
    "Complaint",
    "ComplaintAssignee",
    "ComplaintStatus",
    "Department",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "NORMAL_CATEGORY",
    "User",
    "UserRole",
    "Notification",
    "NotificationType",
    "NotificationChannel",
    "NotificationStatus",
]
