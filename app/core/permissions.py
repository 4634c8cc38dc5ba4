"""
Role-based access control and permissions
"""
from typing import List
from fastapi import HTTPException, status, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user_token
from app.core.location_resolution import GLOBAL_CITY
from app.models.user import User, UserRole


def _load_user(token_data: dict, db: Session) -> User:
    user_id = token_data.get("sub")
    user = db.query(User).filter(User.id == int(user_id)).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


def require_role(allowed_roles: List[UserRole]):
    """Dependency to require specific roles"""
    async def role_checker(
        token_data: dict = Depends(get_current_user_token),
        db: Session = Depends(get_db)
    ):
        user = _load_user(token_data, db)

        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )

        return user

    return role_checker


def get_current_user(
    token_data: dict = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    return _load_user(token_data, db)


def check_city_access(user: User, city: str) -> bool:
    """Check if a staff member or admin may act on complaints of a city"""
    if user.role == UserRole.ADMIN and user.city == GLOBAL_CITY:
        return True

    if user.role in (UserRole.ADMIN, UserRole.STAFF):
        return user.city == city

    return False
