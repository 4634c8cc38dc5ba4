"""
User schemas
"""
from pydantic import BaseModel, EmailStr
from typing import Optional
from app.models.complaint import Department
from app.models.user import UserRole


class StaffCreate(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    department: Department
    # Only honoured for global admins; city admins provision into their own city
    city: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    city: Optional[str] = None
    department: Optional[Department] = None
    points: int = 0
    resolution_streak: int = 0
    top_fixer_badge: Optional[str] = None

    class Config:
        from_attributes = True
