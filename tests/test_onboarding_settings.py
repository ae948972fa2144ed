"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from config.settings import OnboardingSettings


class TestOnboardingSettings:
    """Tests for OnboardingSettings."""

    def test_defaults(self):
        settings = OnboardingSettings(_env_file=None)
        assert settings.dashboard_route == "/dashboard"
        assert settings.api_prefix == "/api"
        assert settings.is_production is False

    def test_environment_override(self, monkeypatch):
        """Fields read ONBOARDING_-prefixed environment variables."""
        monkeypatch.setenv("ONBOARDING_DASHBOARD_ROUTE", "/workspace/")
        monkeypatch.setenv("ONBOARDING_LOG_LEVEL", "debug")
        settings = OnboardingSettings(_env_file=None)
        assert settings.dashboard_route == "/workspace"
        assert settings.log_level == "DEBUG"

    def test_route_must_be_absolute(self):
        with pytest.raises(ValidationError):
            OnboardingSettings(_env_file=None, dashboard_route="dashboard")

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            OnboardingSettings(_env_file=None, log_level="loud")

    def test_production_flag(self):
        assert OnboardingSettings(_env_file=None, environment="Production").is_production is True

    def test_dashboard_route_used_by_service(self, repository, signature):
        """A configured dashboard route is returned once every form is done."""
        from services.onboarding_service import OnboardingService

        settings = OnboardingSettings(_env_file=None, dashboard_route="/home")
        service = OnboardingService(repository=repository, settings=settings)
        service.create_client("Jane Client", client_id="c1", selected_forms=["SFC"])
        slug = "statement-of-financial-condition"
        service.save_review("c1", slug, 1, {"accountRegistration": {"rrName": "Rita", "rrNo": "7"}})
        service.save_review("c1", slug, 2, {
            "acknowledgements": {
                "attestDataAccurateComplete": True,
                "agreeReportMaterialChanges": True,
                "understandMayNeedRecertification": True,
                "understandMayNeedSupportingDocumentation": True,
                "understandInfoUsedForBestInterestRecommendations": True,
            },
            "signatures": {"accountOwner": signature(), "financialProfessional": signature("Alex")},
        })
        step = service.get_step("c1", slug, 2)
        assert step["status"] == "COMPLETED"
        assert step["step"]["nextRouteAfterCompletion"] == "/home"
