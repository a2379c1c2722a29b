"""
Pydantic models for complaints.

Firestore documents use camelCase field names; the models below accept
camelCase JSON (frontend) as well as snake_case keyword arguments.
Location and AdminArea are immutable value objects built once per request.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ComplaintStatus(str, Enum):
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    REOPENED = "reopened"


# Statuses that still await action (SLA clock running)
OPEN_STATUSES = (
    ComplaintStatus.SUBMITTED,
    ComplaintStatus.IN_PROGRESS,
    ComplaintStatus.REOPENED,
)

# Statuses a new complaint may be linked to as a duplicate
DUPLICATE_POOL_STATUSES = OPEN_STATUSES + (ComplaintStatus.RESOLVED,)


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActivityType(str, Enum):
    CREATED = "created"
    AI_ANALYZED = "ai_analyzed"
    ADMIN_UPDATED = "admin_updated"
    ADMIN_RESOLVED = "admin_resolved"
    ADMIN_REJECTED = "admin_rejected"
    CITIZEN_REOPENED = "citizen_reopened"
    ESCALATED = "escalated"


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
        extra = "ignore"


class AdminArea(CamelModel):
    """State/district jurisdiction containing a coordinate (all None if unknown)."""

    state_name: Optional[str] = None
    state_code: Optional[str] = None
    district_name: Optional[str] = None
    district_code: Optional[str] = None

    class Config:
        frozen = True

    @property
    def is_tagged(self) -> bool:
        return self.district_name is not None


class GeoPoint(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    class Config:
        frozen = True


class Location(CamelModel):
    """Complaint location enriched with jurisdiction tags."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    state_name: Optional[str] = None
    state_code: Optional[str] = None
    district_name: Optional[str] = None
    district_code: Optional[str] = None
    ward_code: Optional[str] = None
    ward_explicit: bool = False  # wardCode came from the submitter, not the heuristic

    class Config:
        frozen = True

    @classmethod
    def build(
        cls,
        point: GeoPoint,
        address: Optional[str],
        area: AdminArea,
        ward_code: str,
        ward_explicit: bool = False,
    ) -> "Location":
        return cls(
            lat=point.lat,
            lng=point.lng,
            address=address,
            state_name=area.state_name,
            state_code=area.state_code,
            district_name=area.district_name,
            district_code=area.district_code,
            ward_code=ward_code,
            ward_explicit=ward_explicit,
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class LocationInput(CamelModel):
    """Location as submitted by a citizen (before tagging)."""

    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)
    ward_code: Optional[str] = Field(None, max_length=50, description="Explicit ward; overrides the heuristic")


class Attachment(CamelModel):
    file_id: Optional[str] = None
    name: Optional[str] = None
    web_view_link: Optional[str] = None
    type: Optional[str] = None


class ComplaintCreate(CamelModel):
    """
    Model for creating a new complaint (incoming POST request).
    Required-field checks happen in the service so that every caller
    (HTTP, WhatsApp, scripts) gets the same validation error.
    """

    user_id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[Priority] = None
    location: Optional[LocationInput] = None
    attachments: List[Attachment] = Field(default_factory=list)
    source: str = "web"

    class Config:
        json_schema_extra = {
            "example": {
                "userId": "uid_123",
                "title": "Pothole near station",
                "description": "Large pothole blocking the left lane.",
                "category": "Roads",
                "priority": "medium",
                "location": {"lat": 19.0760, "lng": 72.8777, "address": "Station Road"},
            }
        }


class ComplaintUpdate(CamelModel):
    """Generic admin update. Resolution has its own operation."""

    status: Optional[ComplaintStatus] = None
    rejection_reason: Optional[str] = None
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[Priority] = None
    location: Optional[LocationInput] = None
    note: Optional[str] = None


class ResolutionProof(CamelModel):
    image_url: Optional[str] = None
    web_view_link: Optional[str] = None
    note: Optional[str] = None

    @property
    def image_reference(self) -> Optional[str]:
        return self.image_url or self.web_view_link

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ResolveRequest(CamelModel):
    proof: Optional[ResolutionProof] = None
    admin_location: Optional[GeoPoint] = None


class ReasonRequest(CamelModel):
    reason: Optional[str] = None


class ComplaintFilters(CamelModel):
    """Optional listing filters; combined conjunctively with the caller's scope."""

    status: Optional[ComplaintStatus] = None
    priority: Optional[Priority] = None
    state: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1, le=500)


class ActivityLogEntry(CamelModel):
    complaint_id: str
    type: ActivityType
    actor_id: str
    actor_role: str
    meta: Dict[str, Any] = Field(default_factory=dict)
    note: Optional[str] = None
    timestamp: datetime

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="python")
