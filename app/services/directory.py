"""
Directory lookup over staff and admin records
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.location_resolution import GLOBAL_CITY
from app.models.complaint import Department
from app.models.user import User, UserRole


class DirectoryService:
    """Read-only queries over responsible parties scoped by city and department"""

    def __init__(self, db: Session):
        self.db = db

    def find_by_role_city_department(
        self,
        role: UserRole,
        city: Optional[str] = None,
        department: Optional[Department] = None
    ) -> List[User]:
        """
        Active users of a role, optionally narrowed to a city and department.

        Results are ordered by id so that "first match" is stable across calls.
        """
        query = self.db.query(User).filter(
            User.role == role,
            User.is_active == True
        )
        if city is not None:
            query = query.filter(User.city == city)
        if department is not None:
            query = query.filter(User.department == department)
        return query.order_by(User.id.asc()).all()

    def first_by_role_city_department(
        self,
        role: UserRole,
        city: Optional[str] = None,
        department: Optional[Department] = None
    ) -> Optional[User]:
        matches = self.find_by_role_city_department(role, city, department)
        return matches[0] if matches else None

    def city_admin(self, city: str, department: Optional[Department] = None) -> Optional[User]:
        return self.first_by_role_city_department(UserRole.ADMIN, city, department)

    def department_admin(self, city: str, department: Optional[Department]) -> Optional[User]:
        """Admin of a city scoped to exactly this department (none = unscoped admin)"""
        query = self.db.query(User).filter(
            User.role == UserRole.ADMIN,
            User.is_active == True,
            User.city == city
        )
        if department is None:
            query = query.filter(User.department.is_(None))
        else:
            query = query.filter(User.department == department)
        return query.order_by(User.id.asc()).first()

    def global_admin(self) -> Optional[User]:
        return self.first_by_role_city_department(UserRole.ADMIN, GLOBAL_CITY)

    def city_staff(self, city: str) -> List[User]:
        return self.find_by_role_city_department(UserRole.STAFF, city)
