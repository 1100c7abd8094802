"""Staff notification router."""

from fastapi import APIRouter
from loguru import logger

from core.logging_config import mask_email
from models.exceptions import NotificationException
from models.schemas import WelcomeEmailRequest, WelcomeEmailResponse
from services.notification_service import NotificationService, build_welcome_data

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post(
    "/welcome",
    response_model=WelcomeEmailResponse,
    responses={422: {}, 502: {}},
)
def send_welcome_email(request: WelcomeEmailRequest) -> WelcomeEmailResponse:
    """Send first-day details to a newly enrolled family.

    Used by staff once a start date and classroom are confirmed. The email
    is localized by the optional `locale` field.
    """
    data = build_welcome_data(request)
    outcome = NotificationService().send_welcome(data)
    if not outcome.success:
        raise NotificationException(
            "Failed to send welcome email. Please contact us directly."
        )

    logger.info(f"Welcome email sent to {mask_email(data['recipient_email'])}")
    return WelcomeEmailResponse(
        success=True,
        message="Welcome email sent successfully!",
        sent_to=data["recipient_email"],
        start_date=data["start_date"],
    )
