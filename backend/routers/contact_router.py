"""Contact form router."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.orm import Session

from helpers.request_utils import get_request_metadata
from helpers.submission_response import submission_response
from models.config import settings
from models.schemas import SubmissionResult
from repositories.database import get_db
from repositories.db_models import SubmissionKind
from services.submission_service import build_submission_service

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post(
    "",
    response_model=SubmissionResult,
    status_code=201,
    responses={422: {}, 429: {}, 503: {}},
)
def submit_contact_form(
    request: Request,
    form: Any = Body(...),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Submit the contact form.

    No authentication required - public endpoint. Rate limited per client IP
    by the submission pipeline (5 attempts per hour, then a 2 hour block).

    Sends a staff notification and a confirmation email to the sender;
    email failures never fail the submission.
    """
    metadata = get_request_metadata(request)
    result = build_submission_service(db).handle(
        SubmissionKind.CONTACT, form, metadata
    )
    logger.info(f"Contact form submission finished: {result.outcome.value}")
    return submission_response(result, settings.FORM_RATE_LIMIT_MAX_ATTEMPTS)
