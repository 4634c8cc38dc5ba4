"""
User and Role models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.database import Base
from app.models.complaint import Department


class UserRole(str, enum.Enum):
    """User role types"""
    CITIZEN = "citizen"
    STAFF = "staff"
    ADMIN = "admin"


class User(Base):
    """Citizen, staff member or admin"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=True)

    role = Column(Enum(UserRole), nullable=False, default=UserRole.CITIZEN, index=True)

    # Routing scope (staff and admins only)
    city = Column(String(100), nullable=True, index=True)
    department = Column(Enum(Department), nullable=True, index=True)

    # Scoring ledger
    points = Column(Integer, nullable=False, default=0)
    resolution_streak = Column(Integer, nullable=False, default=0)
    top_fixer_badge = Column(String(50), nullable=True)

    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    notifications = relationship("Notification", back_populates="user")

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
