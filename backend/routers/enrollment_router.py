"""Enrollment application router."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from helpers.request_utils import get_request_metadata
from helpers.submission_response import submission_response
from models.config import settings
from models.schemas import AvailabilityResponse, Program, SubmissionResult
from repositories.database import get_db
from repositories.db_models import SubmissionKind
from services.availability_service import ProgramCapacityPolicy
from services.submission_service import build_submission_service

router = APIRouter(prefix="/enrollment", tags=["enrollment"])


@router.post(
    "",
    response_model=SubmissionResult,
    status_code=201,
    responses={422: {}, 429: {}, 503: {}},
)
def submit_enrollment(
    request: Request,
    application: Any = Body(...),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Submit an enrollment application.

    The application is stored as pending, or waitlisted when the program is
    at capacity. The response lists the next steps for the family.
    """
    metadata = get_request_metadata(request)
    result = build_submission_service(db).handle(
        SubmissionKind.ENROLLMENT, application, metadata
    )
    logger.info(f"Enrollment submission finished: {result.outcome.value}")
    return submission_response(result, settings.FORM_RATE_LIMIT_MAX_ATTEMPTS)


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    program: Program,
    db: Session = Depends(get_db),
) -> AvailabilityResponse:
    """Open spots and waitlist length for a program."""
    return ProgramCapacityPolicy(db, settings.PROGRAM_CAPACITY).check_availability(
        program
    )
