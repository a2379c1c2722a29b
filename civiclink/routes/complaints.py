"""
Complaint endpoints - citizen submission, role-scoped listing and the
admin/citizen lifecycle actions.

The caller is identified by the `X-User-Id` header and resolved to a
RoleProfile once per request. Domain errors propagate to the
exception handlers registered in civiclink.main.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from civiclink.models.complaint import (
    ComplaintCreate,
    ComplaintFilters,
    ComplaintStatus,
    ComplaintUpdate,
    Priority,
    ReasonRequest,
    ResolveRequest,
)
from civiclink.models.user import RoleProfile
from civiclink.services.complaint_service import ComplaintService, get_complaint_service
from civiclink.services.query_planner import PUBLIC_FEED_LIMIT, RoleScopedQueryPlanner, get_query_planner
from civiclink.services.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["Complaints"])


def get_caller(
    x_user_id: Optional[str] = Header(None),
    users: UserService = Depends(get_user_service),
) -> RoleProfile:
    """Resolve the X-User-Id header to a RoleProfile."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return users.get_role_profile(x_user_id.strip())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_complaint(
    payload: ComplaintCreate,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    """
    Submit a new complaint.

    The complaint is owned by the calling user regardless of any
    userId in the body.
    """
    logger.info(f"📝 POST /complaints - user={caller.uid}, category={payload.category}")
    payload = payload.model_copy(update={"user_id": caller.uid})
    return service.create(payload)


@router.get("")
def list_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = Query(None),
    state: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    ward: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    caller: RoleProfile = Depends(get_caller),
    planner: RoleScopedQueryPlanner = Depends(get_query_planner),
) -> List[Dict[str, Any]]:
    """List complaints visible to the caller, newest first."""
    filters = ComplaintFilters(
        status=status_filter,
        priority=priority,
        state=state,
        district=district,
        ward=ward,
        limit=limit,
    )
    return planner.list(filters, caller)


@router.get("/escalated")
def list_escalated(
    caller: RoleProfile = Depends(get_caller),
    planner: RoleScopedQueryPlanner = Depends(get_query_planner),
) -> List[Dict[str, Any]]:
    """Escalated complaints in the caller's jurisdiction."""
    return planner.escalated(caller)


@router.get("/admin/stats")
def admin_stats(
    caller: RoleProfile = Depends(get_caller),
    planner: RoleScopedQueryPlanner = Depends(get_query_planner),
) -> Dict[str, Any]:
    """Status counts for the caller's jurisdiction (admins only)."""
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return planner.stats(caller)


@router.get("/public/stats")
def public_stats(
    planner: RoleScopedQueryPlanner = Depends(get_query_planner),
) -> Dict[str, int]:
    """Anonymous transparency counters. No caller header needed."""
    return planner.public_stats()


@router.get("/public/feed")
def public_feed(
    limit: int = Query(PUBLIC_FEED_LIMIT, ge=1, le=100),
    planner: RoleScopedQueryPlanner = Depends(get_query_planner),
) -> List[Dict[str, Any]]:
    """Newest complaints without owner details. No caller header needed."""
    return planner.public_feed(limit)


def ensure_can_view(complaint: Dict[str, Any], caller: RoleProfile) -> None:
    """Admins see any complaint; citizens only their own."""
    if not caller.is_admin and complaint.get("userId") != caller.uid:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your complaint")


@router.get("/{complaint_id}")
def get_complaint(
    complaint_id: str,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    complaint = service.get(complaint_id)
    ensure_can_view(complaint, caller)
    return complaint


@router.put("/{complaint_id}")
def update_complaint(
    complaint_id: str,
    payload: ComplaintUpdate,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    """Generic admin update. Use /resolve to resolve."""
    return service.update(complaint_id, payload, caller)


@router.put("/{complaint_id}/resolve")
def resolve_complaint(
    complaint_id: str,
    payload: ResolveRequest,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    """Resolve with photo proof; adminLocation enables the on-site GPS check."""
    return service.resolve(complaint_id, payload.proof, payload.admin_location, caller)


@router.put("/{complaint_id}/reject")
def reject_complaint(
    complaint_id: str,
    payload: ReasonRequest,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    return service.reject(complaint_id, payload.reason, caller)


@router.put("/{complaint_id}/reopen")
def reopen_complaint(
    complaint_id: str,
    payload: ReasonRequest,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> Dict[str, Any]:
    return service.reopen(complaint_id, payload.reason, caller)


@router.get("/{complaint_id}/timeline")
def complaint_timeline(
    complaint_id: str,
    caller: RoleProfile = Depends(get_caller),
    service: ComplaintService = Depends(get_complaint_service),
) -> List[Dict[str, Any]]:
    """Activity log, oldest entry first. Same visibility as the complaint itself."""
    ensure_can_view(service.get(complaint_id), caller)
    return service.get_timeline(complaint_id)
