"""
Services Module - Application services for the Regulatory Onboarding service.

Application Services (orchestration):
- OnboardingService: Client records, step reads and writes, review saves

Infrastructure Services:
- OnboardingRepository: Client record storage
- Logging and observability

Import from the submodules directly, e.g.
``from services.onboarding_service import get_onboarding_service``.
"""
