"""
Scoring Ledger
Points, resolution streaks and badge tiers for staff performance
"""
from datetime import datetime
from typing import Optional
import enum
import logging
import math

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from app.core.clock import hours_between
from app.models.complaint import Complaint
from app.models.user import User

logger = logging.getLogger(__name__)

BASE_RESOLUTION_POINTS = 10
SPEED_THRESHOLD_HOURS = 72
MAX_SPEED_BONUS = 20
POSITIVE_FEEDBACK_BONUS = 15
POSITIVE_FEEDBACK_MIN_RATING = 4

# Evaluated highest-first
BADGE_TIERS = [
    (1000, "Municipal Legend"),
    (500, "City Champion"),
    (250, "Expert Fixer"),
    (100, "Problem Solver"),
    (0, "Rookie"),
]


class AwardTrigger(str, enum.Enum):
    RESOLUTION = "RESOLUTION"
    FEEDBACK = "FEEDBACK"


def speed_bonus(created_at: datetime, resolved_at: datetime) -> int:
    """Linearly decaying bonus for resolving within the speed threshold"""
    elapsed = max(0.0, hours_between(created_at, resolved_at))
    if elapsed > SPEED_THRESHOLD_HOURS:
        return 0
    speed_factor = 1 - (elapsed / SPEED_THRESHOLD_HOURS)
    # Half-up rounding
    return int(math.floor(speed_factor * MAX_SPEED_BONUS + 0.5))


def badge_for(points: int) -> str:
    for threshold, label in BADGE_TIERS:
        if points >= threshold:
            return label
    return BADGE_TIERS[-1][1]


def points_for(complaint: Complaint, trigger: AwardTrigger) -> int:
    """Points a complaint is worth for a trigger, without side effects"""
    if trigger == AwardTrigger.RESOLUTION:
        if complaint.resolved_at is None or complaint.created_at is None:
            return 0
        return BASE_RESOLUTION_POINTS + speed_bonus(complaint.created_at, complaint.resolved_at)

    if trigger == AwardTrigger.FEEDBACK:
        rating = complaint.feedback_rating
        if rating is not None and rating >= POSITIVE_FEEDBACK_MIN_RATING:
            return POSITIVE_FEEDBACK_BONUS
        return 0

    return 0


class ScoringLedger:
    """Commits point awards to staff records"""

    def __init__(self, db: Session):
        self.db = db

    def award(self, staff_id: Optional[int], complaint: Complaint, trigger: AwardTrigger) -> int:
        """
        Award points to a staff member for a complaint event.

        Points, streak and badge change in a single UPDATE statement so
        concurrent awards for the same staff member never lose increments.
        Returns the points awarded; 0 when there is nobody to award.
        """
        if staff_id is None:
            return 0

        trigger = AwardTrigger(trigger)
        points = points_for(complaint, trigger)
        if points <= 0:
            return 0

        new_total = User.points + points
        badge = case(
            *[(new_total >= threshold, label) for threshold, label in BADGE_TIERS[:-1]],
            else_=BADGE_TIERS[-1][1],
        )
        streak_increment = 1 if trigger == AwardTrigger.RESOLUTION else 0

        # Badge is assigned before points: MySQL applies SET clauses left to
        # right, so it must still read the pre-increment total.
        stmt = (
            update(User)
            .where(User.id == staff_id)
            .ordered_values(
                (User.top_fixer_badge, badge),
                (User.points, new_total),
                (User.resolution_streak, User.resolution_streak + streak_increment),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            logger.warning(f"[Scoring] Staff member {staff_id} not found; {points} points not awarded")
            return 0

        staff = self.db.get(User, staff_id)
        self.db.refresh(staff, ["points", "resolution_streak", "top_fixer_badge"])

        complaint.points_awarded = points
        logger.info(f"[Scoring] {points} points awarded to {staff_id} ({trigger.value})")
        return points
