"""
Complaint models

A complaint's lifecycle (status, SLA snapshot, escalation snapshot) is only
changed through the transition methods on ``Complaint``. They refuse to
touch a complaint in a terminal status and keep the escalation level
non-decreasing.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Text, JSON, Float,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.clock import utcnow
from app.core.database import Base
from app.core.exceptions import ComplaintStateError

# Classifier label meaning "nothing wrong in the submitted media"
NORMAL_CATEGORY = "Normal"
MAX_ESCALATION_LEVEL = 3
SLA_BREACH_REASON = "SLA_BREACH"


class ComplaintStatus(str, enum.Enum):
    """Complaint status"""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    AUTO_CLOSED = "AUTO_CLOSED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.AUTO_CLOSED)
ACTIVE_STATUSES = (ComplaintStatus.OPEN, ComplaintStatus.IN_PROGRESS)


class Department(str, enum.Enum):
    """Municipal departments complaints are routed to"""
    SANITATION = "Sanitation"
    PLUMBING = "Plumbing"
    STRUCTURAL = "Structural"
    ELECTRICAL = "Electrical"

    @classmethod
    def from_category(cls, category):
        """Case-insensitive category label -> department, None when unmapped"""
        if isinstance(category, cls):
            return category
        key = (category or "").strip().lower()
        for department in cls:
            if department.value.lower() == key:
                return department
        return None


class ComplaintAssignee(Base):
    """Member of a complaint's assisting set"""
    __tablename__ = "complaint_assignees"
    __table_args__ = (
        UniqueConstraint("complaint_id", "user_id", name="uq_complaint_assignee"),
    )

    id = Column(Integer, primary_key=True, index=True)
    complaint_id = Column(Integer, ForeignKey("complaints.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), default=utcnow)

    complaint = relationship("Complaint", back_populates="assignees")
    user = relationship("User")


class Complaint(Base):
    """Citizen complaint"""
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    tracking_number = Column(String(50), unique=True, index=True, nullable=False)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Issue details
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    department = Column(Enum(Department), nullable=True, index=True)
    media_urls = Column(JSON, default=list)

    # Location
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = Column(Enum(ComplaintStatus), default=ComplaintStatus.OPEN, nullable=False, index=True)

    # Assignment
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # SLA snapshot
    sla_deadline = Column(DateTime(timezone=True), nullable=True, index=True)
    sla_time_remaining_hours = Column(Integer, nullable=True)
    sla_is_overdue = Column(Boolean, default=False, nullable=False)
    sla_breached_at = Column(DateTime(timezone=True), nullable=True)

    # Escalation snapshot
    escalation_level = Column(Integer, default=0, nullable=False)
    escalated_at = Column(DateTime(timezone=True), nullable=True)
    escalated_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    auto_escalated = Column(Boolean, default=False, nullable=False)
    escalation_reason = Column(String(255), nullable=True)

    # Resolution and feedback
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    feedback_rating = Column(Integer, nullable=True)  # 1-5
    feedback_comment = Column(Text, nullable=True)
    feedback_at = Column(DateTime(timezone=True), nullable=True)
    points_awarded = Column(Integer, nullable=True)

    # Optimistic concurrency for batch read-modify-write
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    submitted_by = relationship("User", foreign_keys=[submitted_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    escalated_to = relationship("User", foreign_keys=[escalated_to_id])
    assignees = relationship(
        "ComplaintAssignee",
        back_populates="complaint",
        order_by="ComplaintAssignee.id",
        cascade="all, delete-orphan",
    )
    notifications = relationship("Notification", back_populates="complaint")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Complaint {self.tracking_number} ({self.status})>"

    @property
    def assigned_user_ids(self):
        return [a.user_id for a in self.assignees]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _ensure_active(self, action: str):
        if self.is_terminal:
            raise ComplaintStateError(
                f"Cannot {action} complaint {self.tracking_number} in status {self.status.value}"
            )

    def add_assignee(self, user_id) -> bool:
        """Set-add a user to the assisting set; False when already present"""
        if user_id is None or user_id in self.assigned_user_ids:
            return False
        self.assignees.append(ComplaintAssignee(user_id=user_id))
        return True

    def apply_assignment(self, decision):
        self._ensure_active("assign")
        self.department = decision.department
        self.assigned_to_id = decision.primary_assignee_id
        for user_id in decision.assigned_user_ids:
            self.add_assignee(user_id)

    def apply_sla(self, state):
        self._ensure_active("update SLA of")
        if self.sla_breached_at is not None and state.breached_at is None:
            raise ComplaintStateError("SLA breach time cannot be cleared")
        self.sla_deadline = state.deadline
        self.sla_time_remaining_hours = state.time_remaining_hours
        self.sla_is_overdue = state.is_overdue
        self.sla_breached_at = state.breached_at

    def apply_escalation(self, level: int, target_id: int, escalated_at, auto: bool, reason: str):
        self._ensure_active("escalate")
        current = self.escalation_level or 0
        if level < 1 or level > MAX_ESCALATION_LEVEL:
            raise ComplaintStateError(f"Escalation level must be between 1 and {MAX_ESCALATION_LEVEL}")
        if level < current:
            raise ComplaintStateError(
                f"Complaint {self.tracking_number} is already at escalation level {current}"
            )
        if auto and not self.sla_is_overdue:
            raise ComplaintStateError("Automatic escalation requires a breached SLA")
        self.escalation_level = level
        self.escalated_at = escalated_at
        self.escalated_to_id = target_id
        self.auto_escalated = auto
        self.escalation_reason = reason
        self.add_assignee(target_id)

    def start_progress(self):
        self._ensure_active("start")
        self.status = ComplaintStatus.IN_PROGRESS

    def resolve(self, resolved_at):
        self._ensure_active("resolve")
        self.status = ComplaintStatus.RESOLVED
        self.resolved_at = resolved_at

    def auto_close(self):
        if self.status != ComplaintStatus.OPEN or self.assigned_to_id is not None:
            raise ComplaintStateError("Only new unassigned complaints can be auto-closed")
        self.status = ComplaintStatus.AUTO_CLOSED

    def record_feedback(self, rating: int, comment, recorded_at):
        if self.status != ComplaintStatus.RESOLVED:
            raise ComplaintStateError("Feedback is only accepted for resolved complaints")
        if self.feedback_rating is not None:
            raise ComplaintStateError("Feedback has already been recorded for this complaint")
        if not 1 <= rating <= 5:
            raise ComplaintStateError("Rating must be between 1 and 5")
        self.feedback_rating = rating
        self.feedback_comment = comment
        self.feedback_at = recorded_at
