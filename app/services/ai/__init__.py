from app.services.ai.complaint_triage import ComplaintTriageService

__all__ = [
    "ComplaintTriageService",
]
