"""
Notification models for out-of-band updates
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.database import Base


class NotificationType(str, enum.Enum):
    """Notification types"""
    COMPLAINT_CREATED = "complaint_created"
    COMPLAINT_ASSIGNED = "complaint_assigned"
    STATUS_CHANGED = "status_changed"
    AUTO_CLOSED = "auto_closed"
    SLA_BREACH = "sla_breach"
    ESCALATION = "escalation"
    FEEDBACK_RECEIVED = "feedback_received"
    LOW_FEEDBACK_ALERT = "low_feedback_alert"


class NotificationChannel(str, enum.Enum):
    """Notification channels"""
    IN_APP = "in_app"
    EMAIL = "email"
    SMS = "sms"


class NotificationStatus(str, enum.Enum):
    """Notification status"""
    PENDING = "pending"
    SENT = "sent"
    READ = "read"
    FAILED = "failed"


class Notification(Base):
    """User notification"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    # Recipient
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Notification details
    notification_type = Column(Enum(NotificationType), nullable=False, index=True)
    channel = Column(Enum(NotificationChannel), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Related entities
    complaint_id = Column(Integer, ForeignKey("complaints.id"), nullable=True)

    # Status
    status = Column(Enum(NotificationStatus), default=NotificationStatus.PENDING, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    extra_data = Column(JSON, default=dict)
    action_url = Column(String(500), nullable=True)  # Deep link

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
    complaint = relationship("Complaint", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.notification_type} to {self.user_id}>"
