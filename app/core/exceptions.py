"""
Domain exceptions

Raised by the routing, SLA and escalation services. Endpoints translate
them into HTTP errors; the batch scheduler logs them per complaint.
"""
from typing import Any, Dict, Optional


class CivicTrackerError(Exception):
    """Base exception for the complaint engine"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class NoResponsiblePartyError(CivicTrackerError):
    """No staff member or admin of any kind can own the complaint"""

    def __init__(self, city: str, department: Optional[str] = None):
        super().__init__(
            f"No responsible party found for city '{city}'",
            details={"city": city, "department": department},
        )


class ComplaintStateError(CivicTrackerError):
    """A lifecycle transition was attempted from an invalid state"""


class NoEscalationTargetError(CivicTrackerError):
    """No admin matches the requested escalation level"""

    def __init__(self, level: int, city: Optional[str]):
        super().__init__(
            f"No escalation target for level {level} in '{city}'",
            details={"level": level, "city": city},
        )


class GeocodingError(CivicTrackerError):
    """Address could not be resolved to a city"""
