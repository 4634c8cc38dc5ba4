"""
Staff leaderboard over the scoring ledger
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.complaint import Complaint, TERMINAL_STATUSES
from app.models.user import User, UserRole


class LeaderboardService:
    def __init__(self, db: Session):
        self.db = db

    def ranking(self, city: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Staff ordered by points, then closed complaints, then streak, with
        longer-serving staff first on a full tie.
        """
        closed_counts = (
            self.db.query(
                Complaint.assigned_to_id.label("staff_id"),
                func.count(Complaint.id).label("closed_count")
            )
            .filter(Complaint.status.in_(TERMINAL_STATUSES))
            .group_by(Complaint.assigned_to_id)
            .subquery()
        )
        closed = func.coalesce(closed_counts.c.closed_count, 0)

        query = (
            self.db.query(User, closed.label("closed_count"))
            .outerjoin(closed_counts, closed_counts.c.staff_id == User.id)
            .filter(User.role == UserRole.STAFF, User.is_active == True)
        )
        if city:
            query = query.filter(User.city == city)
        query = query.order_by(
            User.points.desc(),
            closed.desc(),
            User.resolution_streak.desc(),
            User.created_at.asc(),
            User.id.asc(),
        )
        if limit:
            query = query.limit(limit)

        return [
            {
                "rank": index + 1,
                "id": staff.id,
                "name": staff.name,
                "city": staff.city,
                "department": staff.department.value if staff.department else None,
                "points": staff.points or 0,
                "resolved_complaints": closed_count,
                "resolution_streak": staff.resolution_streak or 0,
                "top_fixer_badge": staff.top_fixer_badge or "None",
            }
            for index, (staff, closed_count) in enumerate(query.all())
        ]
