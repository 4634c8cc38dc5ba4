"""
Notification queueing

Notifications are written as pending rows alongside the change that caused
them and dispatched later. Delivery is best-effort: failures are logged and
never surface to the caller.
"""
from typing import Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.complaint import Complaint, ComplaintStatus
from app.models.notification import Notification, NotificationType, NotificationChannel, NotificationStatus
from app.models.user import User

logger = logging.getLogger(__name__)


class NotificationService:
    """Queues notifications for citizens, staff and admins"""

    def __init__(self, db: Session):
        self.db = db

    def _channels_for(self, user: Optional[User]) -> List[NotificationChannel]:
        channels = [NotificationChannel.IN_APP]
        if user is not None:
            if user.email:
                channels.append(NotificationChannel.EMAIL)
            if user.phone:
                channels.append(NotificationChannel.SMS)
        return channels

    def notify(
        self,
        recipient_id: Optional[int],
        message: str,
        title: str = "Complaint update",
        notification_type: NotificationType = NotificationType.STATUS_CHANGED,
        complaint: Optional[Complaint] = None,
        channels: Optional[Iterable[NotificationChannel]] = None,
    ) -> bool:
        """Queue a notification; returns False when nothing was queued"""
        if recipient_id is None:
            return False
        try:
            if channels is None:
                channels = self._channels_for(self.db.get(User, recipient_id))
            for channel in channels:
                self.db.add(Notification(
                    user_id=recipient_id,
                    notification_type=notification_type,
                    channel=channel,
                    title=title,
                    message=message,
                    complaint_id=complaint.id if complaint is not None else None,
                    status=NotificationStatus.PENDING,
                    action_url=f"/complaints/{complaint.id}" if complaint is not None else None,
                ))
            return True
        except Exception as e:
            logger.error(f"Failed to queue notification for user {recipient_id}: {str(e)}")
            return False

    def notify_status_change(self, complaint: Complaint, note: Optional[str] = None) -> bool:
        """Tell the citizen who filed the complaint about its new status"""
        message = (
            f"Your complaint (ID: {complaint.tracking_number}) status has been updated to "
            f"{complaint.status.value}."
        )
        if note:
            message = f"{message} {note}"
        notification_type = (
            NotificationType.AUTO_CLOSED
            if complaint.status == ComplaintStatus.AUTO_CLOSED
            else NotificationType.STATUS_CHANGED
        )
        return self.notify(
            complaint.submitted_by_id,
            message,
            title=f"Status update: {complaint.status.value}",
            notification_type=notification_type,
            complaint=complaint,
        )

    def dispatch_pending(self, user_id: int, channel: Optional[NotificationChannel] = None) -> int:
        """Mark a user's pending notifications as sent"""
        query = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.status == NotificationStatus.PENDING
        )
        if channel:
            query = query.filter(Notification.channel == channel)
        notifications = query.all()
        for notification in notifications:
            notification.status = NotificationStatus.SENT
            notification.sent_at = utcnow()
        return len(notifications)
