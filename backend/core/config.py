"""
Centralized configuration for the Scan Reconcile backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8090,http://localhost:5173,http://127.0.0.1:8090"
    ).split(",")

    # Database holding the session snapshot
    DB_PATH: str = os.environ.get("SCAN_DB_PATH", "data/scan_reconcile.db")

    # API key for protecting destructive endpoints (optional)
    API_KEY: str = os.environ.get("SCAN_API_KEY", "")

    # Scan config JSON (empty = packaged default)
    SCAN_CONFIG_PATH: str = os.environ.get("SCAN_CONFIG_PATH", "")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
