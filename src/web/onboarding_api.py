"""
Client Onboarding API Endpoints.

Routes:
- POST /api/clients                                   : Create client
- GET  /api/clients/{id}                              : Get client
- POST /api/clients/{id}/forms/select                 : Add forms to the selection
- GET  /api/clients/{id}/forms/workspace              : Forms workspace
- GET  /api/clients/{id}/{form-slug}/step-{n}         : Read step
- POST /api/clients/{id}/{form-slug}/step-{n}         : Write one answer
- GET  /api/clients/{id}/{form-slug}/review/step-{n}  : Read step for review
- POST /api/clients/{id}/{form-slug}/review/step-{n}  : Save a whole step from review

Engine errors propagate as OnboardingError and are rendered by the
handlers registered in web.app.
"""

from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from services.onboarding_service import OnboardingService, get_onboarding_service

router = APIRouter(prefix="/clients", tags=["onboarding"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ClientCreateRequest(CamelModel):
    """Request to create a client."""
    name: str = Field(..., min_length=1, description="Client display name")
    advisor_name: str = Field("", alias="advisorName", description="Advisor printed name")
    client_id: Optional[str] = Field(None, alias="clientId", min_length=1)
    selected_forms: List[str] = Field(default_factory=list, alias="selectedForms")


class FormSelectionRequest(CamelModel):
    """Request to add forms to a client's selection."""
    form_codes: List[str] = Field(..., alias="formCodes", min_length=1)


class StepWriteRequest(CamelModel):
    """One answer for one question."""
    question_id: str = Field(..., alias="questionId", min_length=1)
    answer: Any = None

    # Accepted for client compatibility; the stored cursor is authoritative
    client_cursor: Optional[Dict[str, Any]] = Field(None, alias="clientCursor")


class ReviewSaveRequest(CamelModel):
    """Whole-step replacement from the review screen."""
    fields: Dict[str, Any]


# =============================================================================
# CLIENT ENDPOINTS
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_client(
    request_data: ClientCreateRequest,
    service: OnboardingService = Depends(get_onboarding_service),
):
    """Create a client, optionally with an initial form selection."""
    client = service.create_client(
        name=request_data.name,
        advisor_name=request_data.advisor_name,
        client_id=request_data.client_id,
        selected_forms=request_data.selected_forms,
    )
    return {"client": client}


@router.get("/{client_id}")
def get_client(client_id: str, service: OnboardingService = Depends(get_onboarding_service)):
    return {"client": service.get_client(client_id)}


@router.post("/{client_id}/forms/select")
def select_forms(
    client_id: str,
    request_data: FormSelectionRequest,
    service: OnboardingService = Depends(get_onboarding_service),
):
    """
    Add forms to the client's selection.

    Returns addedFormCodes, nextOnboardingRoute and the refreshed workspace.
    """
    return service.select_forms(client_id, request_data.form_codes)


@router.get("/{client_id}/forms/workspace")
def get_workspace(client_id: str, service: OnboardingService = Depends(get_onboarding_service)):
    return service.workspace(client_id)


# =============================================================================
# STEP ENDPOINTS
# =============================================================================

@router.get("/{client_id}/{form_slug}/step-{step_number}")
def read_step(
    client_id: str,
    form_slug: str,
    step_number: int,
    service: OnboardingService = Depends(get_onboarding_service),
):
    return service.get_step(client_id, form_slug, step_number)


@router.post("/{client_id}/{form_slug}/step-{step_number}")
def write_step(
    client_id: str,
    form_slug: str,
    step_number: int,
    request_data: StepWriteRequest,
    service: OnboardingService = Depends(get_onboarding_service),
):
    """
    Submit one answer.

    On success the response carries the updated fields, the advanced
    cursor and the form status; invalid answers return 400 with fieldErrors.
    """
    return service.submit_answer(
        client_id,
        form_slug,
        step_number,
        request_data.question_id,
        request_data.answer,
    )


@router.get("/{client_id}/{form_slug}/review/step-{step_number}")
def read_review_step(
    client_id: str,
    form_slug: str,
    step_number: int,
    service: OnboardingService = Depends(get_onboarding_service),
):
    return service.get_review(client_id, form_slug, step_number)


@router.post("/{client_id}/{form_slug}/review/step-{step_number}")
def save_review_step(
    client_id: str,
    form_slug: str,
    step_number: int,
    request_data: ReviewSaveRequest,
    service: OnboardingService = Depends(get_onboarding_service),
):
    return service.save_review(client_id, form_slug, step_number, request_data.fields)
