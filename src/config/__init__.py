"""Configuration module for the onboarding service."""

from .settings import OnboardingSettings, get_settings

__all__ = [
    "OnboardingSettings",
    "get_settings",
]
