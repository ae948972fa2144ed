"""Application settings using Pydantic Settings.

Centralized configuration for the onboarding service. Every field can be
overridden with an ONBOARDING_-prefixed environment variable or a .env
file, e.g. ONBOARDING_DASHBOARD_ROUTE=/workspace.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class OnboardingSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ONBOARDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Regulatory Onboarding", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines instead of readable ones")

    # Routing
    dashboard_route: str = Field(
        default="/dashboard",
        description="Route returned when no selected form is left to complete",
    )

    # API settings
    api_prefix: str = Field(default="/api", description="Prefix for every API route")
    cors_origins: List[str] = Field(
        default=["http://localhost:5173"],
        description="Origins allowed to call the API from a browser",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("dashboard_route", "api_prefix")
    @classmethod
    def require_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("Routes must start with '/'")
        return value.rstrip("/") or "/"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> OnboardingSettings:
    """
    Get cached application settings instance.

    Returns:
        OnboardingSettings: Cached settings loaded from environment.
    """
    settings = OnboardingSettings()
    if settings.is_production and settings.debug:
        logger.warning("Debug mode is enabled in production")
    return settings
