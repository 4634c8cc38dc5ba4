"""
Escalation Engine
Pushes overdue complaints up the chain of responsible admins
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.core.clock import as_utc, hours_between, utcnow
from app.core.exceptions import NoEscalationTargetError
from app.models.complaint import Complaint, MAX_ESCALATION_LEVEL, SLA_BREACH_REASON
from app.models.notification import NotificationType
from app.models.user import User
from app.services.directory import DirectoryService
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

# Target level -> hours elapsed since the SLA breach
ESCALATION_THRESHOLD_HOURS = {
    1: 6,   # department admin of the city
    2: 12,  # any admin of the city
    3: 24,  # global admin
}


@dataclass(frozen=True)
class EscalationDecision:
    level: int
    target_id: int
    escalated_at: datetime
    hours_since_breach: float
    auto_escalated: bool = True
    reason: str = SLA_BREACH_REASON


class EscalationEngine:
    """Time-driven escalation state machine over levels 0-3"""

    def __init__(
        self,
        db: Session,
        directory: Optional[DirectoryService] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.db = db
        self.directory = directory or DirectoryService(db)
        self.notifications = notifications or NotificationService(db)

    def next_level(self, complaint: Complaint, now: datetime) -> Optional[int]:
        """The single level this pass may advance to, or None"""
        if complaint.is_terminal or not complaint.sla_is_overdue:
            return None
        if complaint.sla_breached_at is None:
            return None

        current = complaint.escalation_level or 0
        if current >= MAX_ESCALATION_LEVEL:
            return None

        candidate = current + 1
        if hours_between(complaint.sla_breached_at, now) >= ESCALATION_THRESHOLD_HOURS[candidate]:
            return candidate
        return None

    def find_target(self, complaint: Complaint, level: int) -> Optional[User]:
        if level == 1:
            return self.directory.department_admin(complaint.city, complaint.department)
        if level == 2:
            return self.directory.city_admin(complaint.city)
        if level == 3:
            return self.directory.global_admin()
        return None

    def evaluate(self, complaint: Complaint, now: Optional[datetime] = None) -> Optional[EscalationDecision]:
        """
        Decide whether an overdue complaint moves up one level.

        Returns None when no transition is due, or when no admin matches the
        next level; in that case the level is left as is and a warning logged.
        """
        now = as_utc(now) or utcnow()
        level = self.next_level(complaint, now)
        if level is None:
            return None

        target = self.find_target(complaint, level)
        if target is None:
            logger.warning(
                f"No escalation target found for level {level} "
                f"(complaint {complaint.tracking_number}, city {complaint.city})"
            )
            return None

        return EscalationDecision(
            level=level,
            target_id=target.id,
            escalated_at=now,
            hours_since_breach=hours_between(complaint.sla_breached_at, now),
        )

    def escalate(self, complaint: Complaint, decision: EscalationDecision) -> Complaint:
        complaint.apply_escalation(
            level=decision.level,
            target_id=decision.target_id,
            escalated_at=decision.escalated_at,
            auto=decision.auto_escalated,
            reason=decision.reason,
        )
        self.notifications.notify(
            decision.target_id,
            f"Complaint {complaint.tracking_number} in {complaint.city} has been escalated to you "
            f"(level {decision.level}, reason: {decision.reason}).",
            title=f"Escalation level {decision.level}",
            notification_type=NotificationType.ESCALATION,
            complaint=complaint,
        )
        logger.info(
            f"ESCALATED: complaint {complaint.tracking_number} to level {decision.level} "
            f"(user {decision.target_id})"
        )
        return complaint

    def escalate_manually(
        self,
        complaint: Complaint,
        level: int,
        reason: str,
        now: Optional[datetime] = None,
        target_id: Optional[int] = None
    ) -> EscalationDecision:
        """Caller-driven escalation, exempt from the time thresholds"""
        now = as_utc(now) or utcnow()
        if target_id is None:
            target = self.find_target(complaint, level)
            if target is None:
                raise NoEscalationTargetError(level, complaint.city)
            target_id = target.id

        breached_at = complaint.sla_breached_at
        decision = EscalationDecision(
            level=level,
            target_id=target_id,
            escalated_at=now,
            hours_since_breach=hours_between(breached_at, now) if breached_at else 0.0,
            auto_escalated=False,
            reason=reason,
        )
        self.escalate(complaint, decision)
        return decision
