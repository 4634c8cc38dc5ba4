"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1.endpoints import complaints, admin, leaderboard, notifications

api_router = APIRouter()

api_router.include_router(complaints.router, prefix="/complaints", tags=["complaints"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
