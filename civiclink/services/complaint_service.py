"""
Complaint service - Business logic for the complaint lifecycle.

Creation flow:
1. Validate required fields (user, title, description, coordinates)
2. Tag the location with its state/district and ward
3. Classify with AI when the citizen gave no category (advisory only)
4. Link to an existing complaint if it is a duplicate
5. Persist as `submitted` and log `created`

DESIGN NOTE:
- Every status change is checked against the transition table
- Resolution requires photo proof and (optionally) an on-site GPS check
- Activity logging, notifications, AI and duplicate linking are
  dependencies: their failures are logged and NEVER fail the operation
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from civiclink.config.firebase import get_complaint_store
from civiclink.core.exceptions import ComplaintNotFound, NotAuthorized, StateConflict, ValidationFailed
from civiclink.core.logging_config import EFFECTS_LOGGER_NAME
from civiclink.core.settings import settings
from civiclink.models.complaint import (
    ActivityType,
    ComplaintCreate,
    ComplaintStatus,
    ComplaintUpdate,
    GeoPoint,
    Location,
    ResolutionProof,
)
from civiclink.models.user import RoleProfile
from civiclink.services.activity_log import SYSTEM_ACTOR, ActivityLogger, run_effect
from civiclink.services.admin_areas import AdminAreaResolver, get_admin_area_resolver
from civiclink.services.ai_plugin import fallback_result, get_ai_registry
from civiclink.services.duplicate_detection import DuplicateDetector
from civiclink.services.notifications import (
    TEMPLATE_REJECTED,
    TEMPLATE_REOPENED,
    TEMPLATE_RESOLVED,
    ComplaintNotifier,
    WhatsAppSimulatorSender,
)
from civiclink.services.query_planner import derive_overdue
from civiclink.services.status_workflow import ComplaintStateMachine
from civiclink.services.user_service import UserService
from civiclink.services.ward_assignment import assign_ward
from civiclink.storage.base import ComplaintStore
from civiclink.utils.geo import great_circle_distance

logger = logging.getLogger(__name__)
effects_logger = logging.getLogger(EFFECTS_LOGGER_NAME)


class ComplaintService:
    """
    Owns complaint creation and every legal status transition.
    """

    def __init__(
        self,
        store: ComplaintStore,
        resolver: AdminAreaResolver,
        detector: DuplicateDetector,
        activity: ActivityLogger,
        notifier: ComplaintNotifier,
        classifier,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.detector = detector
        self.activity = activity
        self.notifier = notifier
        self.classifier = classifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, payload: ComplaintCreate) -> Dict[str, Any]:
        """
        Create a new complaint.

        IMPORTANT: If AI or duplicate detection fails, the complaint is
        still stored (with fallback classification, unlinked).

        Args:
            payload: Complaint data; userId is the authenticated caller

        Returns:
            The stored complaint document including its generated id

        Raises:
            ValidationFailed: missing user, title, description or coordinates
        """
        missing = [
            name
            for name, value in (
                ("userId", payload.user_id),
                ("title", payload.title),
                ("description", payload.description),
            )
            if not (value and value.strip())
        ]
        if payload.location is None or payload.location.lat is None or payload.location.lng is None:
            missing.append("location.lat/lng")
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

        point = GeoPoint(lat=payload.location.lat, lng=payload.location.lng)
        location = self._tag_location(point, payload.location.address, payload.location.ward_code)

        category = payload.category.strip() if payload.category and payload.category.strip() else None
        priority = payload.priority
        ai_result = None
        if category is None:
            ai_result = self._classify(payload.title, payload.description)
            category = ai_result.category
            priority = priority or ai_result.priority

        duplicate_of = self._detect_duplicate(point, category)

        now = self.clock()
        document = {
            "userId": payload.user_id,
            "title": payload.title.strip(),
            "description": payload.description.strip(),
            "category": category,
            "priority": priority or "medium",
            "status": ComplaintStatus.SUBMITTED.value,
            "location": location.to_document(),
            "attachments": [a.model_dump(by_alias=True) for a in payload.attachments],
            "source": payload.source,
            "createdAt": now,
            "updatedAt": now,
            "timesReopened": 0,
            "supportCount": 1,
            "duplicateOf": duplicate_of,
            "isOverdue": False,
            "isEscalated": False,
            "escalationTriggered": False,
            "escalatedAt": None,
            "aiSummary": ai_result.summary if ai_result else None,
        }

        complaint_id = self.store.add(document)
        document["id"] = complaint_id
        logger.info(
            f"✅ Complaint {complaint_id} created by {payload.user_id} "
            f"({category}, district={location.district_name}, ward={location.ward_code})"
        )

        if duplicate_of:
            run_effect(f"support:{duplicate_of}", self.detector.record_support, duplicate_of)

        self.activity.log(
            complaint_id,
            ActivityType.CREATED,
            payload.user_id,
            "citizen",
            meta={"duplicateOf": duplicate_of, "locationTagged": location.district_name is not None},
        )
        if ai_result is not None:
            self.activity.log(
                complaint_id,
                ActivityType.AI_ANALYZED,
                SYSTEM_ACTOR,
                "system",
                meta={
                    "category": ai_result.category,
                    "priority": ai_result.priority,
                    "provider": ai_result.meta.get("provider"),
                },
            )

        return document

    def _tag_location(self, point: GeoPoint, address: Optional[str], explicit_ward: Optional[str]) -> Location:
        area = self.resolver.lookup(point.lat, point.lng)
        ward_code = assign_ward(point.lat, point.lng, explicit_ward)
        return Location.build(point, address, area, ward_code, ward_explicit=bool(explicit_ward))

    def _classify(self, title: str, description: str):
        try:
            return self.classifier.classify(title, description)
        except Exception as e:
            effects_logger.error(f"AI classification failed: {e}", exc_info=True)
            return fallback_result(title)

    def _detect_duplicate(self, point: GeoPoint, category: str) -> Optional[str]:
        try:
            return self.detector.detect(point.lat, point.lng, category)
        except Exception as e:
            effects_logger.error(f"Duplicate scan failed, creating complaint unlinked: {e}", exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, complaint_id: str) -> Dict[str, Any]:
        """Single complaint with derived isOverdue."""
        return derive_overdue(self._load(complaint_id), self.clock())

    def get_timeline(self, complaint_id: str) -> List[Dict[str, Any]]:
        """Activity entries, oldest first."""
        self._load(complaint_id)
        return self.store.list_activity(complaint_id)

    def _load(self, complaint_id: str) -> Dict[str, Any]:
        complaint = self.store.get(complaint_id)
        if complaint is None:
            raise ComplaintNotFound(complaint_id)
        return complaint

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def update(self, complaint_id: str, payload: ComplaintUpdate, caller: RoleProfile) -> Dict[str, Any]:
        """
        Generic admin update (status in_progress/rejected and content edits).

        Raises:
            StateConflict: status=resolved (always), an illegal transition, or a
                category/coordinate edit on a linked duplicate
            NotAuthorized: caller is a citizen
            ComplaintNotFound: unknown id
            ValidationFailed: nothing to update, or rejection without reason
        """
        if payload.status == ComplaintStatus.RESOLVED.value:
            raise StateConflict("Use the resolve endpoint with photo proof to resolve a complaint")
        if not caller.is_admin:
            raise NotAuthorized("Only admins can update complaints")

        complaint = self._load(complaint_id)
        self._check_duplicate_link(complaint, payload)
        fields: Dict[str, Any] = {}

        if payload.status and payload.status != complaint.get("status"):
            ComplaintStateMachine.check_transition(
                complaint.get("status"),
                payload.status,
                caller,
                complaint.get("userId"),
                reason=payload.rejection_reason,
            )
            fields["status"] = payload.status
            if payload.status == ComplaintStatus.REJECTED.value:
                fields["rejectionReason"] = payload.rejection_reason.strip()

        for name, key in (("title", "title"), ("description", "description"), ("category", "category"), ("priority", "priority")):
            value = getattr(payload, name)
            if value is not None and value != complaint.get(key):
                fields[key] = value

        if payload.location is not None:
            location = self._edit_location(complaint.get("location") or {}, payload)
            if location != complaint.get("location"):
                fields["location"] = location

        if not fields and not payload.note:
            raise ValidationFailed("No updatable fields provided")

        fields["updatedAt"] = self.clock()
        self.store.update(complaint_id, fields)
        logger.info(f"Complaint {complaint_id} updated by {caller.uid}: {sorted(fields)}")

        updated = {**complaint, **fields, "id": complaint_id}
        self.activity.log(
            complaint_id,
            ActivityType.ADMIN_UPDATED,
            caller.uid,
            caller.role_name,
            meta={"changes": sorted(k for k in fields if k != "updatedAt"), "newStatus": fields.get("status")},
            note=payload.note,
        )
        if fields.get("status") == ComplaintStatus.REJECTED.value:
            self.notifier.notify_owner(updated, TEMPLATE_REJECTED, reason=fields["rejectionReason"])

        return updated

    def _edit_location(self, current: Dict[str, Any], payload: ComplaintUpdate) -> Dict[str, Any]:
        """Apply an admin location edit; moved coordinates are re-tagged."""
        edit = payload.location
        lat = edit.lat if edit.lat is not None else current.get("lat")
        lng = edit.lng if edit.lng is not None else current.get("lng")
        address = edit.address if edit.address is not None else current.get("address")

        moved = (lat, lng) != (current.get("lat"), current.get("lng"))
        if moved and lat is not None and lng is not None:
            # a submitter-given ward survives the move unless a new one is sent
            ward = edit.ward_code or (current.get("wardCode") if current.get("wardExplicit") else None)
            logger.info(f"Location moved to ({lat}, {lng}); re-tagging admin area")
            return self._tag_location(GeoPoint(lat=lat, lng=lng), address, ward).to_document()

        location = {**current, "address": address}
        if edit.ward_code:
            location["wardCode"] = edit.ward_code
            location["wardExplicit"] = True
        return location

    def _check_duplicate_link(self, complaint: Dict[str, Any], payload: ComplaintUpdate) -> None:
        """A linked duplicate must keep the category and position it was matched on."""
        canonical_id = complaint.get("duplicateOf")
        if not canonical_id:
            return

        if payload.category is not None and payload.category != complaint.get("category"):
            raise StateConflict(
                f"Complaint is linked as a duplicate of {canonical_id}; its category cannot change"
            )

        edit = payload.location
        current = complaint.get("location") or {}
        if edit is not None and (
            (edit.lat is not None and edit.lat != current.get("lat"))
            or (edit.lng is not None and edit.lng != current.get("lng"))
        ):
            raise StateConflict(
                f"Complaint is linked as a duplicate of {canonical_id}; its coordinates cannot change"
            )

    def resolve(
        self,
        complaint_id: str,
        proof: Optional[ResolutionProof],
        admin_location: Optional[GeoPoint],
        caller: RoleProfile,
    ) -> Dict[str, Any]:
        """
        Resolve a complaint with photo proof.

        If the admin's location is given it must be within the allowed
        distance of the complaint (on-site verification).

        Raises:
            NotAuthorized: caller is not an admin
            ValidationFailed: proof lacks imageUrl / webViewLink
            ComplaintNotFound: unknown id
            StateConflict: illegal transition or GPS mismatch
        """
        if not caller.is_admin:
            raise NotAuthorized("Only admins can resolve complaints")
        if proof is None or not proof.image_reference:
            raise ValidationFailed("Resolution proof (image) is required")

        complaint = self._load(complaint_id)
        ComplaintStateMachine.check_transition(
            complaint.get("status"),
            ComplaintStatus.RESOLVED.value,
            caller,
            complaint.get("userId"),
            dedicated=True,
        )

        distance = self._check_resolver_distance(complaint, admin_location)

        fields = {
            "status": ComplaintStatus.RESOLVED.value,
            "resolutionProof": proof.to_document(),
            "resolverId": caller.uid,
            "updatedAt": self.clock(),
        }
        self.store.update(complaint_id, fields)
        logger.info(f"✅ Complaint {complaint_id} resolved by {caller.uid}")

        updated = {**complaint, **fields, "id": complaint_id}
        meta = {"newStatus": ComplaintStatus.RESOLVED.value}
        if distance is not None:
            meta["distanceMeters"] = round(distance, 1)
        self.activity.log(
            complaint_id,
            ActivityType.ADMIN_RESOLVED,
            caller.uid,
            caller.role_name,
            meta=meta,
            note=proof.note,
        )
        self.notifier.notify_owner(updated, TEMPLATE_RESOLVED)
        return updated

    def _check_resolver_distance(self, complaint: Dict[str, Any], admin_location: Optional[GeoPoint]) -> Optional[float]:
        location = complaint.get("location") or {}
        if admin_location is None or location.get("lat") is None or location.get("lng") is None:
            return None

        distance = great_circle_distance(admin_location.lat, admin_location.lng, location["lat"], location["lng"])
        limit = settings.resolve_distance_limit
        if distance > limit:
            logger.warning(
                f"GPS mismatch resolving {complaint.get('id')}: admin is {distance:.0f}m away (max {limit:.0f}m)"
            )
            raise StateConflict(
                f"GPS Mismatch: You are {distance:.0f}m away from the complaint location. "
                f"Must be within {limit:.0f}m.",
                distance_meters=distance,
                max_distance_meters=limit,
            )
        return distance

    def reject(self, complaint_id: str, reason: Optional[str], caller: RoleProfile) -> Dict[str, Any]:
        """Reject a complaint with a mandatory reason (admin only)."""
        if not caller.is_admin:
            raise NotAuthorized("Only admins can reject complaints")
        if not (reason and reason.strip()):
            raise ValidationFailed("A rejection reason is required")

        complaint = self._load(complaint_id)
        ComplaintStateMachine.check_transition(
            complaint.get("status"),
            ComplaintStatus.REJECTED.value,
            caller,
            complaint.get("userId"),
            reason=reason,
        )

        fields = {
            "status": ComplaintStatus.REJECTED.value,
            "rejectionReason": reason.strip(),
            "updatedAt": self.clock(),
        }
        self.store.update(complaint_id, fields)
        logger.info(f"Complaint {complaint_id} rejected by {caller.uid}")

        updated = {**complaint, **fields, "id": complaint_id}
        self.activity.log(
            complaint_id,
            ActivityType.ADMIN_REJECTED,
            caller.uid,
            caller.role_name,
            meta={"newStatus": ComplaintStatus.REJECTED.value, "reason": fields["rejectionReason"]},
            note=fields["rejectionReason"],
        )
        self.notifier.notify_owner(updated, TEMPLATE_REJECTED, reason=fields["rejectionReason"])
        return updated

    def reopen(self, complaint_id: str, reason: Optional[str], caller: RoleProfile) -> Dict[str, Any]:
        """Reopen a resolved complaint (original owner only)."""
        complaint = self._load(complaint_id)
        ComplaintStateMachine.check_transition(
            complaint.get("status"),
            ComplaintStatus.REOPENED.value,
            caller,
            complaint.get("userId"),
            reason=reason,
        )

        fields = {
            "status": ComplaintStatus.REOPENED.value,
            "timesReopened": (complaint.get("timesReopened") or 0) + 1,
            "reopenReason": reason.strip() if reason else None,
            "updatedAt": self.clock(),
        }
        self.store.update(complaint_id, fields)
        logger.info(f"Complaint {complaint_id} reopened by owner {caller.uid} (times={fields['timesReopened']})")

        updated = {**complaint, **fields, "id": complaint_id}
        self.activity.log(
            complaint_id,
            ActivityType.CITIZEN_REOPENED,
            caller.uid,
            caller.role_name,
            meta={"newStatus": ComplaintStatus.REOPENED.value, "reason": fields["reopenReason"]},
            note=fields["reopenReason"],
        )
        self.notifier.notify_owner(updated, TEMPLATE_REOPENED)
        return updated


def build_complaint_service(
    store: ComplaintStore,
    resolver: Optional[AdminAreaResolver] = None,
    classifier=None,
    sender=None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ComplaintService:
    """Wire a ComplaintService around a store with default collaborators."""
    return ComplaintService(
        store=store,
        resolver=resolver or get_admin_area_resolver(),
        detector=DuplicateDetector(store),
        activity=ActivityLogger(store, clock=clock),
        notifier=ComplaintNotifier(sender or WhatsAppSimulatorSender(), UserService(store)),
        classifier=classifier or get_ai_registry(),
        clock=clock,
    )


# Global service instance (singleton)
_complaint_service: Optional[ComplaintService] = None


def get_complaint_service() -> ComplaintService:
    global _complaint_service
    if _complaint_service is None:
        _complaint_service = build_complaint_service(get_complaint_store())
    return _complaint_service
