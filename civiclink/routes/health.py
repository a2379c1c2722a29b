"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from civiclink.config.firebase import get_complaint_store
from civiclink.core.settings import settings
from civiclink.services.admin_areas import get_admin_area_resolver

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    resolver = get_admin_area_resolver()
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "adminAreasLoaded": resolver.is_loaded,
        "adminAreaCount": resolver.feature_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
def database_health():
    """
    Database connectivity check.
    Runs a trivial lookup against the complaint store.
    """
    try:
        store = get_complaint_store()
        store.get("__healthcheck__")
        return {
            "status": "healthy",
            "database": type(store).__name__,
            "connected": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}",
        )
