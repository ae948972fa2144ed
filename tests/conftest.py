"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import date
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("ONBOARDING_ENVIRONMENT", "test")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    from config.settings import OnboardingSettings
    return OnboardingSettings(_env_file=None, environment="test", dashboard_route="/dashboard")

@pytest.fixture
def repository():
    from services.onboarding_repository import InMemoryOnboardingRepository
    repo = InMemoryOnboardingRepository()
    yield repo
    repo.clear()

@pytest.fixture
def service(repository, settings):
    from services.onboarding_service import OnboardingService
    return OnboardingService(repository=repository, settings=settings)

@pytest.fixture
def make_context():
    """
    Build a StepContext from raw step documents.

    Usage:
        context = make_context({(FormType.INVESTOR_PROFILE, 1): {...}})
    """
    from onboarding.prefill import build_context

    def _make(documents=None, client_name="Jane Client", advisor_name="Alex Advisor"):
        return build_context("client-1", client_name, advisor_name, documents or {})

    return _make

@pytest.fixture
def today():
    return date.today().isoformat()

@pytest.fixture
def signature(today):
    """Complete signature block factory."""

    def _block(name="Jane Client"):
        return {"typedSignature": name, "printedName": name, "date": today}

    return _block

@pytest.fixture
def api_client(service):
    """
    Provide a TestClient wired to the test service instance.

    Usage:
        def test_my_endpoint(api_client):
            response = api_client.post("/api/clients", json={...})
    """
    from fastapi.testclient import TestClient
    from services.onboarding_service import get_onboarding_service
    from web.app import app

    app.dependency_overrides[get_onboarding_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def investor_step1():
    """Raw Investor Profile step 1 document factory with a chosen account type."""

    def _document(primary_type="individual", **registration):
        account_registration = {
            "rrName": "Rita Rep",
            "rrNo": "RR-100",
            "customerNames": "Jane Client",
            "accountNo": "ACC-1",
            "retailRetirement": {"retail": True, "retirement": False},
        }
        account_registration.update(registration)
        return {
            "accountRegistration": account_registration,
            "typeOfAccount": {"primaryType": {primary_type: True}},
        }

    return _document
