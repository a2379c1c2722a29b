"""
CivicLink - FastAPI Application Entry Point

Citizen complaint tracking for Indian cities: geo-tagged submission,
duplicate linking, role-scoped listing and SLA escalation.

DESIGN PRINCIPLES:
- Jurisdiction (state/district/ward) is derived from coordinates, not typed
- Resolution needs photo proof and an on-site GPS check
- Audit log and notifications never block a complaint operation
- AI classification is advisory and optional
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from civiclink.config.firebase import get_complaint_store
from civiclink.core.exceptions import ComplaintError, PersistenceFailure
from civiclink.core.logging_config import configure_logging
from civiclink.core.settings import settings
from civiclink.routes import admin, complaints, health
from civiclink.services.admin_areas import get_admin_area_resolver

configure_logging()
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Geo-tagged citizen complaint tracking with role-scoped dashboards",
    debug=settings.DEBUG,
)


@app.exception_handler(ComplaintError)
async def complaint_error_handler(request: Request, exc: ComplaintError):
    """Map the complaint error taxonomy to JSON responses."""
    if isinstance(exc, PersistenceFailure):
        logger.error(f"🔥 Storage failure on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log request validation errors and return them in FastAPI's shape."""
    logger.warning(f"🔥 Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


# Global exception handler to catch everything else
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(f"🔥 Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


# Origins come from settings; no wildcard.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: complaint store and admin boundary dataset
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        get_complaint_store()
    except Exception as e:
        logger.warning(f"Complaint store initialization failed: {e}. Database operations may fail.")

    resolver = get_admin_area_resolver()
    resolver.load()
    if resolver.feature_count == 0:
        logger.warning("⚠️ No admin boundaries loaded; complaints will not be location-tagged")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(complaints.router)
app.include_router(admin.router)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
    }
