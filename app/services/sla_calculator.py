"""
SLA Calculator
Department-based resolution deadlines and overdue tracking
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging
import math

from app.core.clock import as_utc, utcnow
from app.models.complaint import Complaint, Department

logger = logging.getLogger(__name__)

# Resolution SLA per department, in hours
DEPARTMENT_SLA_HOURS = {
    Department.SANITATION: 24,
    Department.PLUMBING: 48,
    Department.STRUCTURAL: 72,
    Department.ELECTRICAL: 12,
}
DEFAULT_SLA_HOURS = 24


@dataclass(frozen=True)
class SLAState:
    deadline: datetime
    time_remaining_hours: int
    is_overdue: bool
    breached_at: Optional[datetime] = None


class SLACalculator:
    """Computes SLA deadlines and refreshes overdue state"""

    def sla_hours(self, department: Optional[Department]) -> int:
        return DEPARTMENT_SLA_HOURS.get(Department.from_category(department), DEFAULT_SLA_HOURS)

    def deadline(self, complaint: Complaint) -> datetime:
        return as_utc(complaint.created_at) + timedelta(hours=self.sla_hours(complaint.department))

    def snapshot(self, complaint: Complaint) -> SLAState:
        """Current stored SLA state of a complaint"""
        return SLAState(
            deadline=as_utc(complaint.sla_deadline) or self.deadline(complaint),
            time_remaining_hours=complaint.sla_time_remaining_hours or 0,
            is_overdue=bool(complaint.sla_is_overdue),
            breached_at=as_utc(complaint.sla_breached_at),
        )

    def compute(self, complaint: Complaint, now: datetime) -> SLAState:
        """SLA state at ``now`` without mutating the complaint"""
        now = as_utc(now)
        deadline = as_utc(complaint.sla_deadline) or self.deadline(complaint)
        remaining_hours = (deadline - now).total_seconds() / 3600
        time_remaining = max(0, math.floor(remaining_hours))
        is_overdue = now > deadline

        breached_at = as_utc(complaint.sla_breached_at)
        if is_overdue and breached_at is None:
            breached_at = now

        return SLAState(
            deadline=deadline,
            time_remaining_hours=time_remaining,
            is_overdue=is_overdue,
            breached_at=breached_at,
        )

    def initialize(self, complaint: Complaint, now: Optional[datetime] = None) -> SLAState:
        """Set the initial deadline of a newly created complaint"""
        now = as_utc(now) or utcnow()
        if complaint.created_at is None:
            complaint.created_at = now
        deadline = self.deadline(complaint)
        remaining_hours = (deadline - now).total_seconds() / 3600
        state = SLAState(
            deadline=deadline,
            time_remaining_hours=max(0, math.floor(remaining_hours)),
            is_overdue=False,
            breached_at=None,
        )
        complaint.apply_sla(state)
        logger.info(f"SLA initialized for complaint {complaint.tracking_number}: deadline {deadline.isoformat()}")
        return state

    def refresh(self, complaint: Complaint, now: Optional[datetime] = None) -> SLAState:
        """
        Recompute time remaining and overdue state at ``now``.

        The first call that finds the complaint overdue records the breach
        time; later calls keep it. Terminal complaints are left untouched.
        """
        if complaint.is_terminal:
            return self.snapshot(complaint)

        now = as_utc(now) or utcnow()
        newly_breached = complaint.sla_breached_at is None
        state = self.compute(complaint, now)
        complaint.apply_sla(state)

        if state.is_overdue and newly_breached:
            logger.warning(f"SLA BREACH: complaint {complaint.tracking_number} is now overdue")
        return state
