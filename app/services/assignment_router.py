"""
Assignment Router
Decides the primary assignee and assisting set for a classified complaint
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import NoResponsiblePartyError
from app.models.complaint import Department
from app.services.directory import DirectoryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentDecision:
    primary_assignee_id: int
    assigned_user_ids: List[int] = field(default_factory=list)
    department: Optional[Department] = None
    message: str = ""


class AssignmentRouter:
    """Routes complaints to department staff, falling back to admins"""

    def __init__(self, db: Session, directory: Optional[DirectoryService] = None):
        self.db = db
        self.directory = directory or DirectoryService(db)

    def route(self, category: str, city: str) -> AssignmentDecision:
        """
        Route a complaint by category and normalized city.

        Cases are evaluated in order:
        A. no staff in the city -> city admin, else global admin
        B. staff exist but none in the department -> same fallback
        C. department staff exist -> first of them, assisted by the city admin

        Raises NoResponsiblePartyError when no admin exists anywhere.
        """
        if not city or not city.strip():
            raise ValueError("city is required for routing")

        department = Department.from_category(category)
        if department is None:
            logger.info(f"Category '{category}' has no department mapping; routing on city only")

        city_admin = self.directory.city_admin(city)
        global_admin = self.directory.global_admin()
        city_staff = self.directory.city_staff(city)
        department_staff = [s for s in city_staff if department is not None and s.department == department]

        if department_staff:
            primary = department_staff[0]
            assigned = [primary.id]
            if city_admin is not None:
                assigned.append(city_admin.id)
            return AssignmentDecision(
                primary_assignee_id=primary.id,
                assigned_user_ids=assigned,
                department=department,
                message=f"Assigned to {department.value} staff in {city}",
            )

        if not city_staff:
            reason = f"No staff found in {city}"
        else:
            reason = f"No {department.value if department else 'matching'} staff in {city}"

        fallback = city_admin or global_admin
        if fallback is None:
            logger.warning(f"{reason} and no admin available; complaint stays unassigned")
            raise NoResponsiblePartyError(city, department.value if department else None)

        scope = "city admin" if fallback is city_admin else "global admin"
        logger.info(f"{reason}. Assigned to {scope} {fallback.id}")
        return AssignmentDecision(
            primary_assignee_id=fallback.id,
            assigned_user_ids=[fallback.id],
            department=department,
            message=f"{reason}. Assigned to {scope}.",
        )
