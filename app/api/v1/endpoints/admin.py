"""
Admin endpoints: staff provisioning and SLA job controls
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from app.core.database import get_db
from app.core.location_resolution import normalize_city_name, is_global_city
from app.core.permissions import require_role
from app.models.complaint import Complaint, ACTIVE_STATUSES
from app.models.user import User, UserRole
from app.schemas.user import StaffCreate, UserResponse
from app.services.sla_scheduler import SLABatchScheduler, get_sla_scheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff_data: StaffCreate,
    current_user: User = Depends(require_role([UserRole.ADMIN])),
    db: Session = Depends(get_db)
):
    """Provision a staff member in the admin's city"""
    if is_global_city(current_user.city):
        if not staff_data.city:
            raise HTTPException(status_code=400, detail="City is required when provisioning as global admin")
        city = normalize_city_name(staff_data.city)
    else:
        city = current_user.city

    existing = db.query(User).filter(User.email == staff_data.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="User with this email already exists")
    if staff_data.phone and db.query(User).filter(User.phone == staff_data.phone).first():
        raise HTTPException(status_code=400, detail="User with this phone already exists")

    staff = User(
        name=staff_data.name,
        email=staff_data.email,
        phone=staff_data.phone,
        role=UserRole.STAFF,
        city=city,
        department=staff_data.department,
        is_active=True,
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)

    logger.info(f"Admin {current_user.id} provisioned staff {staff.id} ({staff.department.value}) in {city}")
    return staff


@router.post("/sla/run")
async def run_sla_processing(
    current_user: User = Depends(require_role([UserRole.ADMIN])),
    scheduler: SLABatchScheduler = Depends(get_sla_scheduler)
):
    """Run one SLA pass now, waiting for any pass already in flight"""
    result = await scheduler.run_once()
    return {"message": "SLA processing completed", **result.as_dict()}


@router.get("/sla/scheduler")
async def get_scheduler_status(
    current_user: User = Depends(require_role([UserRole.ADMIN])),
    scheduler: SLABatchScheduler = Depends(get_sla_scheduler)
):
    return scheduler.status()


@router.get("/sla/summary")
async def get_sla_summary(
    current_user: User = Depends(require_role([UserRole.ADMIN])),
    db: Session = Depends(get_db)
):
    """Active, overdue and escalated complaint counts for the admin's scope"""
    query = db.query(Complaint).filter(Complaint.status.in_(ACTIVE_STATUSES))
    if not is_global_city(current_user.city):
        query = query.filter(Complaint.city == current_user.city)

    active = query.count()
    overdue = query.filter(Complaint.sla_is_overdue == True).count()
    by_level = dict(
        query.with_entities(Complaint.escalation_level, func.count(Complaint.id))
        .filter(Complaint.escalation_level > 0)
        .group_by(Complaint.escalation_level)
        .all()
    )

    return {
        "city": current_user.city,
        "active": active,
        "overdue": overdue,
        "escalated_by_level": {str(level): by_level.get(level, 0) for level in (1, 2, 3)},
    }
