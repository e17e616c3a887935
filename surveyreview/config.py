"""
Configuration Management

Centralized configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from typing import Optional


def _optional_path(value: str) -> Optional[Path]:
    return Path(value) if value else None


class Config:
    """Application configuration."""

    # Environment
    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

    # Survey backend (bulk fetch + approval mutation)
    SURVEY_API_BASE_URL = os.environ.get("SURVEY_API_BASE_URL", "").rstrip("/")
    # Bearer token issued by the quality-engineer login
    SURVEY_API_TOKEN = os.environ.get("SURVEY_API_TOKEN") or None
    SURVEY_API_TIMEOUT = float(os.environ.get("SURVEY_API_TIMEOUT", "30"))
    SURVEY_API_RETRY_ATTEMPTS = int(os.environ.get("SURVEY_API_RETRY_ATTEMPTS", "3"))
    SURVEY_API_BACKOFF = float(os.environ.get("SURVEY_API_BACKOFF", "0.5"))

    # Offline snapshot file used instead of the backend when set
    SURVEY_DATA_FILE = _optional_path(os.environ.get("SURVEY_DATA_FILE", ""))

    # Audit log (in memory when unset)
    EVENT_LOG_PATH = _optional_path(os.environ.get("EVENT_LOG_PATH", ""))

    # CORS
    ALLOWED_ORIGINS = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")

    # Server
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "8000"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")
    LOG_JSON = os.environ.get("LOG_JSON", "false").lower() == "true"

    @classmethod
    def validate(cls):
        """Validate configuration and raise errors for missing required values."""
        if cls.ENVIRONMENT == "production":
            if not cls.SURVEY_API_BASE_URL and not cls.SURVEY_DATA_FILE:
                raise ValueError(
                    "SURVEY_API_BASE_URL (or SURVEY_DATA_FILE) environment variable "
                    "must be set in production."
                )
        if cls.SURVEY_API_RETRY_ATTEMPTS < 1:
            raise ValueError("SURVEY_API_RETRY_ATTEMPTS must be at least 1")


def get_config() -> Config:
    """Get validated configuration."""
    Config.validate()
    return Config
