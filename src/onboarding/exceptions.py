"""
Onboarding errors.

Every error is a per-request, caller-visible outcome. The web layer maps
them to JSON responses using status_code and to_dict().
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class OnboardingError(Exception):
    """Base error for the onboarding engine and service."""

    code = "ONBOARDING_ERROR"
    status_code = 400

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        self.message = message
        self.field_errors = dict(field_errors or {})
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message}
        if self.field_errors:
            payload["fieldErrors"] = self.field_errors
        return payload


class ValidationError(OnboardingError):
    """One or more answers failed validation."""

    code = "VALIDATION_ERROR"
    default_message = "Please correct the highlighted fields."

    def __init__(self, field_errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or self.default_message, field_errors)


class InactiveQuestionError(ValidationError):
    """A write addressed a question hidden by the current answers."""

    code = "INACTIVE_QUESTION"

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__({"questionId": "This question is not active for the selected account path."})


class NotFoundError(OnboardingError):
    code = "NOT_FOUND"
    status_code = 404


class FormNotSelectedError(OnboardingError):
    code = "FORM_NOT_SELECTED"

    def __init__(self, form_title: str):
        super().__init__(f"{form_title} is not selected for this client.")


class StepNotRequiredError(OnboardingError):
    code = "STEP_NOT_REQUIRED"

    def __init__(self, message: str = "Step 4 is not required for the selected account type."):
        super().__init__(message)
