"""
Complaint error taxonomy.

Every failure the core raises on purpose derives from ComplaintError.
Routes map each class to an HTTP status (see civiclink.main).
Dependency failures (notifications, audit log, AI) never surface here;
they are caught and logged where they happen.
"""

from typing import Optional


class ComplaintError(Exception):
    """Base class for complaint-domain errors."""

    code = "complaint_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationFailed(ComplaintError):
    """Missing required fields, missing proof or reason. No mutation."""

    code = "validation_failed"
    status_code = 400


class NotAuthorized(ComplaintError):
    """Wrong role or not the complaint owner. No mutation."""

    code = "not_authorized"
    status_code = 403


class ComplaintNotFound(ComplaintError):
    code = "not_found"
    status_code = 404

    def __init__(self, complaint_id: str):
        super().__init__(f"Complaint not found: {complaint_id}")
        self.complaint_id = complaint_id


class StateConflict(ComplaintError):
    """
    Illegal transition or GPS mismatch on resolve. No mutation.

    For GPS mismatches the measured and allowed distances are attached.
    """

    code = "state_conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        distance_meters: Optional[float] = None,
        max_distance_meters: Optional[float] = None,
    ):
        super().__init__(message)
        self.distance_meters = distance_meters
        self.max_distance_meters = max_distance_meters

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.distance_meters is not None:
            payload["distance_meters"] = round(self.distance_meters, 1)
            payload["max_distance_meters"] = self.max_distance_meters
        return payload


class PersistenceFailure(ComplaintError):
    """Storage unavailable. Surfaced to callers as a generic internal error."""

    code = "internal_error"
    status_code = 500

    def to_dict(self) -> dict:
        return {"detail": "Internal server error", "code": self.code}
