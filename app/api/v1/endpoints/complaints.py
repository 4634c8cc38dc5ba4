"""
Complaint endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from typing import List
import logging
import uuid

from app.core.clock import utcnow
from app.core.database import get_db
from app.core.exceptions import ComplaintStateError, GeocodingError, NoEscalationTargetError, NoResponsiblePartyError
from app.core.location_resolution import normalize_city_name, is_global_city
from app.core.permissions import get_current_user, require_role, check_city_access
from app.models.complaint import Complaint, ComplaintAssignee, ComplaintStatus, Department, ACTIVE_STATUSES
from app.models.notification import NotificationType
from app.models.user import User, UserRole
from app.schemas.complaint import ComplaintCreate, StatusUpdate, FeedbackCreate, EscalationRequest, ComplaintResponse
from app.services.ai.complaint_triage import ComplaintTriageService
from app.services.assignment_router import AssignmentRouter
from app.services.directory import DirectoryService
from app.services.escalation_engine import EscalationEngine
from app.services.geocoding import GeocodingService
from app.services.notifications import NotificationService
from app.services.scoring_ledger import ScoringLedger, AwardTrigger
from app.services.sla_calculator import SLACalculator

logger = logging.getLogger(__name__)

router = APIRouter()
triage_service = ComplaintTriageService()
sla_calculator = SLACalculator()

LOW_FEEDBACK_RATING = 2


def get_geocoder() -> GeocodingService:
    return GeocodingService()


def _get_complaint_or_404(db: Session, complaint_id: int) -> Complaint:
    complaint = db.query(Complaint).filter(Complaint.id == complaint_id).first()
    if not complaint:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return complaint


def _can_view(user: User, complaint: Complaint) -> bool:
    if user.role == UserRole.CITIZEN:
        return complaint.submitted_by_id == user.id
    return user.id in complaint.assigned_user_ids or check_city_access(user, complaint.city)


def _commit(db: Session):
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Complaint was modified concurrently, please retry"
        )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_complaint(
    complaint_data: ComplaintCreate,
    current_user: User = Depends(require_role([UserRole.CITIZEN])),
    db: Session = Depends(get_db),
    geocoder: GeocodingService = Depends(get_geocoder)
):
    """Submit a complaint: classify, route, and start its SLA clock"""
    latitude = complaint_data.latitude
    longitude = complaint_data.longitude
    if complaint_data.city:
        city = normalize_city_name(complaint_data.city)
    elif complaint_data.raw_address:
        try:
            location = await geocoder.geocode(complaint_data.raw_address)
        except GeocodingError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
        city = location.city
        latitude, longitude = location.latitude, location.longitude
    else:
        raise HTTPException(status_code=400, detail="Please include a valid address or city")

    category = complaint_data.category
    triage_result = None
    if not category:
        triage_result = await triage_service.classify(complaint_data.description, complaint_data.media_urls)
        category = triage_result["category"]

    now = utcnow()

    complaint = Complaint(
        # Placeholder until the row id is known
        tracking_number=f"PENDING-{uuid.uuid4().hex}",
        submitted_by_id=current_user.id,
        title=complaint_data.title,
        description=complaint_data.description,
        category=category,
        department=Department.from_category(category),
        media_urls=complaint_data.media_urls,
        address=complaint_data.raw_address,
        city=city,
        latitude=latitude,
        longitude=longitude,
        status=ComplaintStatus.OPEN,
        created_at=now,
    )
    db.add(complaint)
    db.flush()
    complaint.tracking_number = f"CMP-{now.strftime('%Y%m%d')}-{complaint.id:06d}"
    notifications = NotificationService(db)

    # Nothing wrong detected: closed without assignment or SLA
    if ComplaintTriageService.is_normal(category):
        complaint.auto_close()
        notifications.notify_status_change(complaint, "Auto-closed as no issue detected.")
        db.commit()
        return {
            "message": "Complaint detected as 'Normal' and auto-closed by system.",
            "complaint_id": complaint.id,
            "tracking_number": complaint.tracking_number,
            "status": complaint.status.value,
        }

    routing_message = None
    try:
        decision = AssignmentRouter(db).route(category, city)
        complaint.apply_assignment(decision)
        routing_message = decision.message
    except NoResponsiblePartyError as e:
        logger.warning(f"Complaint {complaint.tracking_number} left unassigned: {e.message}")
        routing_message = "No responsible party available; complaint is unassigned."

    sla_calculator.initialize(complaint, now)

    if complaint.assigned_to_id:
        notifications.notify(
            complaint.assigned_to_id,
            f"Complaint {complaint.tracking_number} ({category}) in {city} has been assigned to you.",
            title="New complaint assigned",
            notification_type=NotificationType.COMPLAINT_ASSIGNED,
            complaint=complaint,
        )
    notifications.notify(
        complaint.submitted_by_id,
        f"Your complaint {complaint.tracking_number} has been registered.",
        title="Complaint registered",
        notification_type=NotificationType.COMPLAINT_CREATED,
        complaint=complaint,
    )

    db.commit()
    db.refresh(complaint)

    return {
        "message": "Complaint submitted and assigned." if complaint.assigned_to_id else "Complaint submitted.",
        "complaint_id": complaint.id,
        "tracking_number": complaint.tracking_number,
        "status": complaint.status.value,
        "category": category,
        "department": complaint.department.value if complaint.department else None,
        "city": complaint.city,
        "assigned_to": complaint.assigned_to_id,
        "assigned_users": complaint.assigned_user_ids,
        "unassigned": complaint.assigned_to_id is None,
        "routing": routing_message,
        "sla_deadline": complaint.sla_deadline.isoformat() if complaint.sla_deadline else None,
        "triage": triage_result,
    }


@router.get("/history", response_model=List[ComplaintResponse])
async def complaint_history(
    current_user: User = Depends(require_role([UserRole.CITIZEN])),
    db: Session = Depends(get_db)
):
    """Complaints filed by the current citizen, newest first"""
    complaints = db.query(Complaint).filter(
        Complaint.submitted_by_id == current_user.id
    ).order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()
    return [ComplaintResponse.from_complaint(c) for c in complaints]


@router.get("/staff", response_model=List[ComplaintResponse])
async def staff_dashboard(
    assigned_to_me: bool = False,
    overdue_only: bool = False,
    skip: int = 0,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_role([UserRole.STAFF, UserRole.ADMIN])),
    db: Session = Depends(get_db)
):
    """Active complaints visible to a staff member or admin"""
    query = db.query(Complaint).filter(Complaint.status.in_(ACTIVE_STATUSES))

    if assigned_to_me:
        query = query.join(ComplaintAssignee).filter(ComplaintAssignee.user_id == current_user.id)
    elif not (current_user.role == UserRole.ADMIN and is_global_city(current_user.city)):
        # Anyone but a global admin is scoped to their city
        query = query.filter(Complaint.city == current_user.city)

    if overdue_only:
        query = query.filter(Complaint.sla_is_overdue == True)

    complaints = query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).offset(skip).limit(limit).all()
    return [ComplaintResponse.from_complaint(c) for c in complaints]


@router.get("/{complaint_id}", response_model=ComplaintResponse)
async def get_complaint(
    complaint_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get complaint details with SLA and escalation state"""
    complaint = _get_complaint_or_404(db, complaint_id)
    if not _can_view(current_user, complaint):
        raise HTTPException(status_code=403, detail="Access denied")
    return ComplaintResponse.from_complaint(complaint)


@router.put("/{complaint_id}/status")
async def update_status(
    complaint_id: int,
    status_data: StatusUpdate,
    current_user: User = Depends(require_role([UserRole.STAFF, UserRole.ADMIN])),
    db: Session = Depends(get_db)
):
    """Move a complaint to IN_PROGRESS or RESOLVED"""
    new_status = status_data.status
    if new_status not in (ComplaintStatus.IN_PROGRESS, ComplaintStatus.RESOLVED):
        raise HTTPException(status_code=400, detail="Invalid status provided.")

    complaint = _get_complaint_or_404(db, complaint_id)
    if not _can_view(current_user, complaint):
        raise HTTPException(status_code=403, detail="Access denied")

    points = 0
    try:
        if new_status == ComplaintStatus.IN_PROGRESS:
            complaint.start_progress()
        else:
            complaint.resolve(utcnow())
            points = ScoringLedger(db).award(complaint.assigned_to_id, complaint, AwardTrigger.RESOLUTION)
    except ComplaintStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    NotificationService(db).notify_status_change(complaint)
    _commit(db)

    return {
        "message": f"Complaint status updated to {new_status.value}",
        "complaint_id": complaint.id,
        "new_status": complaint.status.value,
        "resolved_at": complaint.resolved_at.isoformat() if complaint.resolved_at else None,
        "points_awarded": points,
    }


@router.post("/{complaint_id}/feedback")
async def submit_feedback(
    complaint_id: int,
    feedback_data: FeedbackCreate,
    current_user: User = Depends(require_role([UserRole.CITIZEN])),
    db: Session = Depends(get_db)
):
    """Citizen rates a resolved complaint, once"""
    complaint = db.query(Complaint).filter(
        Complaint.id == complaint_id,
        Complaint.submitted_by_id == current_user.id
    ).first()
    if not complaint:
        raise HTTPException(status_code=404, detail="Complaint not found")
    if complaint.status != ComplaintStatus.RESOLVED:
        raise HTTPException(status_code=400, detail="Complaint is not yet resolved.")
    if complaint.feedback_rating is not None:
        raise HTTPException(status_code=400, detail="Feedback has already been recorded for this complaint.")

    try:
        complaint.record_feedback(feedback_data.rating, feedback_data.comment, utcnow())
    except ComplaintStateError as e:
        raise HTTPException(status_code=400, detail=e.message)

    points = ScoringLedger(db).award(complaint.assigned_to_id, complaint, AwardTrigger.FEEDBACK)

    notifications = NotificationService(db)
    if complaint.assigned_to_id:
        notifications.notify(
            complaint.assigned_to_id,
            f"Complaint {complaint.tracking_number} was rated {feedback_data.rating}/5.",
            title="Feedback received",
            notification_type=NotificationType.FEEDBACK_RECEIVED,
            complaint=complaint,
        )
    if feedback_data.rating <= LOW_FEEDBACK_RATING:
        global_admin = DirectoryService(db).global_admin()
        if global_admin:
            notifications.notify(
                global_admin.id,
                f"Low feedback alert: complaint {complaint.tracking_number} rated {feedback_data.rating}/5.",
                title="Low feedback alert",
                notification_type=NotificationType.LOW_FEEDBACK_ALERT,
                complaint=complaint,
            )

    _commit(db)
    return {
        "message": "Feedback recorded successfully.",
        "complaint_id": complaint.id,
        "points_awarded": points,
    }


@router.post("/{complaint_id}/escalate")
async def escalate_complaint(
    complaint_id: int,
    escalation_data: EscalationRequest,
    current_user: User = Depends(require_role([UserRole.ADMIN])),
    db: Session = Depends(get_db)
):
    """Manually escalate a complaint to a chosen level"""
    complaint = _get_complaint_or_404(db, complaint_id)
    if not check_city_access(current_user, complaint.city):
        raise HTTPException(status_code=403, detail="Access denied")

    engine = EscalationEngine(db)
    try:
        decision = engine.escalate_manually(
            complaint,
            level=escalation_data.level,
            reason=escalation_data.reason,
            target_id=escalation_data.target_id,
        )
    except ComplaintStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except NoEscalationTargetError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)

    _commit(db)
    return {
        "message": "Complaint escalated",
        "complaint_id": complaint.id,
        "level": decision.level,
        "escalated_to": decision.target_id,
    }
