"""
Core settings and environment variables for CivicLink.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "CivicLink"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-memory store for local development without Firebase credentials
    USE_MOCK_DB: bool = False

    # Administrative boundaries (GeoJSON, level-2 districts)
    ADMIN_AREAS_PATH: str = "./data/india_level2.geojson"
    ADMIN_AREA_STATE_NAME_KEY: str = "NAME_1"
    ADMIN_AREA_STATE_CODE_KEY: str = "GID_1"
    ADMIN_AREA_DISTRICT_NAME_KEY: str = "NAME_2"
    ADMIN_AREA_DISTRICT_CODE_KEY: str = "GID_2"

    # Duplicate detection
    DUPLICATE_RADIUS_METERS: float = 100.0
    DUPLICATE_DEGREE_WINDOW: float = 0.001  # ~111 m of latitude

    # SLA / escalation
    ESCALATION_SLA_HOURS: int = 48

    # Resolution GPS check
    MAX_RESOLVE_DISTANCE_METERS: float = 200.0
    DEMO_MODE: bool = False
    DEMO_MAX_RESOLVE_DISTANCE_METERS: float = 5000.0

    # AI classification
    AI_ENABLED: bool = True  # if False, only the deterministic fallback is used
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    AI_TIMEOUT_SECONDS: float = 10.0

    # Notifications
    NOTIFICATIONS_ENABLED: bool = False
    DEFAULT_LOCALE: str = "en"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def resolve_distance_limit(self) -> float:
        """Maximum admin-to-complaint distance accepted on resolve."""
        if self.DEMO_MODE:
            return self.DEMO_MAX_RESOLVE_DISTANCE_METERS
        return self.MAX_RESOLVE_DISTANCE_METERS


# Global settings instance
settings = Settings()
