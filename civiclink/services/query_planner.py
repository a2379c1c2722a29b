"""
Role-Scoped Query Planner - who sees which complaints.

DESIGN PRINCIPLES:
- Jurisdiction is decided from the caller's RoleProfile only
- Ward/City admins without an assignment see NOTHING (fail closed)
- Storage is never asked to order: results are sorted here
  (createdAt descending, id ascending as tie-break), then limited
- `isOverdue` is derived on read for open complaints past the SLA;
  the escalation sweeper persists it later
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from civiclink.config.firebase import get_complaint_store
from civiclink.core.settings import settings
from civiclink.models.complaint import OPEN_STATUSES, ComplaintFilters, ComplaintStatus
from civiclink.models.user import AdminLevel, RoleProfile
from civiclink.storage.base import ComplaintStore, QueryFilter
from civiclink.utils.city_normalizer import city_jurisdiction_filter

logger = logging.getLogger(__name__)

_OPEN_STATUS_VALUES = {status.value for status in OPEN_STATUSES}

PUBLIC_FEED_LIMIT = 20
# owner, resolver and moderation fields are never part of the public feed
PUBLIC_FEED_FIELDS = (
    "id",
    "title",
    "description",
    "category",
    "priority",
    "status",
    "location",
    "attachments",
    "supportCount",
    "isOverdue",
    "createdAt",
)


def as_utc(value: Any) -> Optional[datetime]:
    """Timezone-aware UTC datetime, or None for missing/unparseable values."""
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_past_sla(complaint: Dict[str, Any], now: datetime, sla_hours: int) -> bool:
    """Open complaint created at or before `now - sla_hours`."""
    if complaint.get("status") not in _OPEN_STATUS_VALUES:
        return False
    created_at = as_utc(complaint.get("createdAt"))
    if created_at is None:
        return False
    return created_at <= now - timedelta(hours=sla_hours)


def derive_overdue(complaint: Dict[str, Any], now: datetime, sla_hours: Optional[int] = None) -> Dict[str, Any]:
    """Return the complaint with a transient isOverdue=True when past the SLA."""
    hours = sla_hours if sla_hours is not None else settings.ESCALATION_SLA_HOURS
    if not complaint.get("isOverdue") and is_past_sla(complaint, now, hours):
        return {**complaint, "isOverdue": True}
    return complaint


def sort_complaints(complaints: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """createdAt descending, then id ascending. Missing createdAt sorts last."""
    by_id = sorted(complaints, key=lambda c: str(c.get("id", "")))

    def created_key(complaint):
        created_at = as_utc(complaint.get("createdAt"))
        return created_at.timestamp() if created_at else float("-inf")

    return sorted(by_id, key=created_key, reverse=True)


class RoleScopedQueryPlanner:
    """
    Builds storage filters from (caller, filters) and post-processes results.
    """

    def __init__(
        self,
        store: ComplaintStore,
        clock: Optional[Callable[[], datetime]] = None,
        sla_hours: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.sla_hours = sla_hours if sla_hours is not None else settings.ESCALATION_SLA_HOURS

    def scope_filters(self, caller: RoleProfile) -> Optional[List[QueryFilter]]:
        """
        Jurisdiction filters for the caller.

        Returns None when the caller may see nothing, [] when unscoped.
        """
        if not caller.is_admin:
            return [QueryFilter("userId", "==", caller.uid)]

        if caller.level == AdminLevel.WARD:
            if not caller.assigned_ward:
                logger.warning(f"Ward admin {caller.uid} has no assigned ward; returning nothing")
                return None
            return [QueryFilter("location.wardCode", "==", caller.assigned_ward)]

        if caller.level == AdminLevel.CITY:
            city_filter = city_jurisdiction_filter(caller.assigned_city)
            if city_filter is None:
                logger.warning(f"City admin {caller.uid} has no assigned city; returning nothing")
                return None
            return [city_filter]

        # Department and Super admins are unscoped
        return []

    def plan(self, filters: ComplaintFilters, caller: RoleProfile) -> Optional[List[QueryFilter]]:
        """Jurisdiction filters AND the optional request filters."""
        scope = self.scope_filters(caller)
        if scope is None:
            return None
        if not caller.is_admin:
            # Citizens only ever see their own complaints, unfiltered
            return scope

        clauses = list(scope)
        if filters.status:
            clauses.append(QueryFilter("status", "==", filters.status))
        if filters.priority:
            clauses.append(QueryFilter("priority", "==", filters.priority))
        if filters.state:
            clauses.append(QueryFilter("location.stateName", "==", filters.state))
        if filters.district:
            clauses.append(QueryFilter("location.districtName", "==", filters.district))
        if filters.ward:
            clauses.append(QueryFilter("location.wardCode", "==", filters.ward))
        return clauses

    def list(self, filters: Optional[ComplaintFilters], caller: RoleProfile) -> List[Dict[str, Any]]:
        """
        List complaints visible to the caller.

        Args:
            filters: Optional request filters (ignored for citizens)
            caller: Resolved role profile

        Returns:
            Sorted complaints with derived isOverdue, limited if requested
        """
        filters = filters or ComplaintFilters()
        clauses = self.plan(filters, caller)
        if clauses is None:
            return []

        results = self._fetch(clauses)
        if caller.is_admin and filters.limit:
            results = results[: filters.limit]
        return results

    def escalated(self, caller: RoleProfile) -> List[Dict[str, Any]]:
        """Complaints in the caller's scope that the sweeper has escalated."""
        scope = self.scope_filters(caller)
        if scope is None:
            return []
        return self._fetch(scope + [QueryFilter("escalationTriggered", "==", True)])

    def stats(self, caller: RoleProfile) -> Dict[str, Any]:
        """Counts per status plus total, overdue and escalated, within scope."""
        scope = self.scope_filters(caller)
        complaints = [] if scope is None else self._fetch(scope)

        by_status = {status.value: 0 for status in ComplaintStatus}
        for complaint in complaints:
            status = complaint.get("status")
            if status in by_status:
                by_status[status] += 1

        return {
            "total": len(complaints),
            "byStatus": by_status,
            "overdue": sum(1 for c in complaints if c.get("isOverdue")),
            "escalated": sum(1 for c in complaints if c.get("escalationTriggered")),
        }

    # ------------------------------------------------------------------
    # Public transparency views (no caller, no scope)
    # ------------------------------------------------------------------

    def public_stats(self) -> Dict[str, int]:
        """Complaints filed today (UTC), complaints solved and the overall total."""
        now = self.clock()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return {
            "total_complaints_today": len(self.store.query([QueryFilter("createdAt", ">=", start_of_day)])),
            "complaints_solved": len(self.store.query([QueryFilter("status", "==", ComplaintStatus.RESOLVED.value)])),
            "total_complaints": len(self.store.query([])),
        }

    def public_feed(self, limit: int = PUBLIC_FEED_LIMIT) -> List[Dict[str, Any]]:
        """Newest complaints, reduced to the fields safe to show anonymously."""
        complaints = self._fetch([])[:limit]
        return [{k: c[k] for k in PUBLIC_FEED_FIELDS if k in c} for c in complaints]

    def _fetch(self, clauses: List[QueryFilter]) -> List[Dict[str, Any]]:
        now = self.clock()
        results = self.store.query(clauses)
        logger.debug(f"Planner fetched {len(results)} complaints for {len(clauses)} filter(s)")
        return [derive_overdue(c, now, self.sla_hours) for c in sort_complaints(results)]


# Global planner instance (singleton)
_planner: Optional[RoleScopedQueryPlanner] = None


def get_query_planner() -> RoleScopedQueryPlanner:
    global _planner
    if _planner is None:
        _planner = RoleScopedQueryPlanner(get_complaint_store())
    return _planner
