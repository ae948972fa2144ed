"""
FastAPI application for the Regulatory Onboarding service.

Routes:
- GET  /health                  : liveness check
- /api/clients/...              : client onboarding (see web.onboarding_api)
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from middleware.correlation import RequestIdMiddleware
from onboarding.exceptions import OnboardingError, ValidationError
from services.logging_config import configure_logging, get_logger
from web.onboarding_api import router as onboarding_router

settings = get_settings()
configure_logging(level=settings.log_level, json_output=settings.log_json)
logger = get_logger(__name__)

app = FastAPI(title=settings.name, version=settings.version, debug=settings.debug)


# =============================================================================
# MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(onboarding_router, prefix=settings.api_prefix.rstrip("/"))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "version": settings.version}


# =============================================================================
# ERROR HANDLING SYSTEM
# =============================================================================

class ErrorCode(str, Enum):
    """Standardized error codes for consistent client handling."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INACTIVE_QUESTION = "INACTIVE_QUESTION"
    NOT_FOUND = "NOT_FOUND"
    FORM_NOT_SELECTED = "FORM_NOT_SELECTED"
    STEP_NOT_REQUIRED = "STEP_NOT_REQUIRED"
    ONBOARDING_ERROR = "ONBOARDING_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int = 400,
    field_errors: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content: Dict[str, Any] = {
        "code": code.value,
        "message": message,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if field_errors:
        content["fieldErrors"] = field_errors
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(OnboardingError)
async def onboarding_error_handler(request: Request, exc: OnboardingError):
    """Handle engine and service errors."""
    logger.warning(
        f"OnboardingError: {exc.code} - {exc.message}",
        extra={'extra_data': {
            'path': request.url.path,
            'error_paths': sorted(exc.field_errors),
        }}
    )
    return create_error_response(
        code=ErrorCode(exc.code),
        message=exc.message,
        status_code=exc.status_code,
        field_errors=exc.field_errors,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as field errors."""
    field_errors = {}
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part != "body"]
        field_errors[".".join(location) or "body"] = error["msg"]

    logger.warning(
        "Request validation failed",
        extra={'extra_data': {'path': request.url.path, 'error_paths': sorted(field_errors)}}
    )
    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message=ValidationError.default_message,
        status_code=400,
        field_errors=field_errors,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred",
        status_code=500,
    )
