"""
FieldOps Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "FieldOps"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # =========================================================================
    # API SERVER
    # =========================================================================
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000"

    # =========================================================================
    # CONFLICT DETECTION
    # =========================================================================
    MAX_TRAVEL_DISTANCE_MILES: float = 50.0
    MAX_TRAVEL_TIME_MINUTES: int = 90

    # =========================================================================
    # RESOLUTIONS & RECOMMENDATIONS
    # =========================================================================
    DEFAULT_CONFIDENCE_THRESHOLD: int = 70
    RECOMMENDATION_TIMEOUT_SECONDS: float = 10.0
    # Simulated latency of the external scoring call
    RECOMMENDATION_SCORING_DELAY_SECONDS: float = 0.0

    # =========================================================================
    # DATABASE
    # =========================================================================
    # Create missing tables on startup (local development)
    DB_AUTO_CREATE_SCHEMA: bool = False

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================
    METRICS_ENABLED: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
