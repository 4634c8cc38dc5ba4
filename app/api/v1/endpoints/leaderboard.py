"""
Leaderboard endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.database import get_db
from app.core.location_resolution import normalize_city_name
from app.core.permissions import get_current_user
from app.models.user import User
from app.services.leaderboard import LeaderboardService

router = APIRouter()


@router.get("/")
async def get_leaderboard(
    city: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Staff ranked by points"""
    return LeaderboardService(db).ranking(
        city=normalize_city_name(city) if city else None,
        limit=limit
    )
