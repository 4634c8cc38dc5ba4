"""
Complaint schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.models.complaint import ComplaintStatus, Department


class ComplaintCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    raw_address: Optional[str] = None
    # Supplied by callers that already geocoded the address
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    # Classifier output; triaged from the description when absent
    category: Optional[str] = None
    media_urls: List[str] = []


class StatusUpdate(BaseModel):
    status: ComplaintStatus


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class EscalationRequest(BaseModel):
    level: int = Field(..., ge=1, le=3)
    reason: str = Field(..., min_length=1)
    target_id: Optional[int] = None


class SLAResponse(BaseModel):
    deadline: Optional[datetime] = None
    time_remaining_hours: Optional[int] = None
    is_overdue: bool = False
    breached_at: Optional[datetime] = None


class EscalationResponse(BaseModel):
    level: int = 0
    escalated_at: Optional[datetime] = None
    escalated_to: Optional[int] = None
    auto_escalated: bool = False
    escalation_reason: Optional[str] = None


class ComplaintResponse(BaseModel):
    id: int
    tracking_number: str
    title: str
    description: str
    status: ComplaintStatus
    category: Optional[str] = None
    department: Optional[Department] = None
    city: Optional[str] = None
    assigned_to: Optional[int] = None
    assigned_users: List[int] = []
    created_at: datetime
    resolved_at: Optional[datetime] = None
    feedback_rating: Optional[int] = None
    feedback_comment: Optional[str] = None
    points_awarded: Optional[int] = None
    sla: SLAResponse
    escalation: EscalationResponse

    @classmethod
    def from_complaint(cls, complaint) -> "ComplaintResponse":
        return cls(
            id=complaint.id,
            tracking_number=complaint.tracking_number,
            title=complaint.title,
            description=complaint.description,
            status=complaint.status,
            category=complaint.category,
            department=complaint.department,
            city=complaint.city,
            assigned_to=complaint.assigned_to_id,
            assigned_users=complaint.assigned_user_ids,
            created_at=complaint.created_at,
            resolved_at=complaint.resolved_at,
            feedback_rating=complaint.feedback_rating,
            feedback_comment=complaint.feedback_comment,
            points_awarded=complaint.points_awarded,
            sla=SLAResponse(
                deadline=complaint.sla_deadline,
                time_remaining_hours=complaint.sla_time_remaining_hours,
                is_overdue=bool(complaint.sla_is_overdue),
                breached_at=complaint.sla_breached_at,
            ),
            escalation=EscalationResponse(
                level=complaint.escalation_level or 0,
                escalated_at=complaint.escalated_at,
                escalated_to=complaint.escalated_to_id,
                auto_escalated=bool(complaint.auto_escalated),
                escalation_reason=complaint.escalation_reason,
            ),
        )
