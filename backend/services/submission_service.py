"""
Form submission pipeline.

sanitize -> validate -> rate limit -> persist (with retry) -> notify

Every pass ends in a SubmissionResult; expected failures are folded into
the result's outcome and unexpected ones become a generic failure, so
nothing raised inside the pipeline reaches the router.
"""

import uuid
from collections.abc import Mapping
from typing import Any, Union

from loguru import logger
from sqlalchemy.orm import Session

from helpers.request_utils import RequestMetadata
from helpers.retry import RetryPolicy
from helpers.sanitization import sanitize_form
from models.config import Settings, settings
from models.schemas import (
    ContactPayload,
    EnrollmentPayload,
    StoredSubmission,
    SubmissionOutcome,
    SubmissionResult,
    Urgency,
)
from repositories.db_models import SubmissionKind, SubmissionStatus
from services.availability_service import ProgramCapacityPolicy
from services.notification_service import NotificationService
from services.rate_limit_service import (
    RateLimitPolicy,
    RateLimitService,
    build_identifier,
)
from services.submission_store import SqlSubmissionStore, SubmissionRecord, SubmissionStore
from services.validation_service import ValidationService

VALIDATION_FAILED_MESSAGE = "Please correct the form errors"
RATE_LIMITED_MESSAGE = "Too many attempts. Please try again later."
PERSIST_FAILED_MESSAGE = "Failed to submit form. Please try again later."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

RESPONSE_TIMES = {
    Urgency.EMERGENCY: "within 1 hour during business hours",
    Urgency.URGENT: "within 4 hours during business hours",
    Urgency.NORMAL: "within 24-48 hours",
}

ENROLLMENT_PENDING_MESSAGE = (
    "Thank you! Your enrollment application has been received and is being reviewed."
)
ENROLLMENT_PENDING_STEPS = [
    "You'll receive a confirmation email within 15 minutes",
    "Our enrollment team will review your application within 24-48 hours",
    "We'll contact you to schedule an enrollment meeting",
    "Prepare required documents (medical records, immunizations, etc.)",
    "Complete remaining paperwork during enrollment meeting",
]

ENROLLMENT_WAITLIST_MESSAGE = (
    "Your application has been added to our waitlist. "
    "We'll contact you as soon as a spot becomes available."
)
ENROLLMENT_WAITLIST_STEPS = [
    "You'll receive a confirmation email shortly",
    "We'll notify you when a spot opens up",
    "Keep your contact information updated",
    "Feel free to call us for waitlist status updates",
]


def get_response_time(urgency: Urgency) -> str:
    return RESPONSE_TIMES.get(urgency, RESPONSE_TIMES[Urgency.NORMAL])


class SubmissionService:
    """Runs one form submission through the pipeline."""

    def __init__(
        self,
        validator: ValidationService,
        rate_limiter: RateLimitService,
        store: SubmissionStore,
        notifier: NotificationService,
        retry_policy: RetryPolicy | None = None,
        rate_limit_policy: RateLimitPolicy | None = None,
        app_settings: Settings = settings,
    ):
        self.validator = validator
        self.rate_limiter = rate_limiter
        self.store = store
        self.notifier = notifier
        self.settings = app_settings
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=app_settings.PERSIST_MAX_ATTEMPTS,
            delay_seconds=app_settings.PERSIST_RETRY_DELAY_SECONDS,
        )
        self.rate_limit_policy = rate_limit_policy or RateLimitPolicy.from_settings(
            app_settings
        )

    def handle(
        self,
        kind: SubmissionKind,
        raw: Any,
        metadata: RequestMetadata,
    ) -> SubmissionResult:
        """
        Process a raw form submission.

        Args:
            kind: Contact or enrollment.
            raw: Form data as received (expected to be a mapping).
            metadata: Client IP, user agent and locale cookie.

        Returns:
            SubmissionResult describing the terminal state.
        """
        try:
            return self._handle(kind, raw, metadata)
        except Exception as e:
            logger.exception(f"Unexpected error processing {kind.value} submission: {e!r}")
            return SubmissionResult(
                success=False,
                message=UNEXPECTED_ERROR_MESSAGE,
                outcome=SubmissionOutcome.FAILED_UNEXPECTED,
            )

    def _handle(
        self,
        kind: SubmissionKind,
        raw: Any,
        metadata: RequestMetadata,
    ) -> SubmissionResult:
        if not isinstance(raw, Mapping):
            return SubmissionResult(
                success=False,
                message=VALIDATION_FAILED_MESSAGE,
                errors={"form": ["Invalid submission"]},
                outcome=SubmissionOutcome.REJECTED_VALIDATION,
            )

        data = sanitize_form(raw)

        validation = self.validator.validate(kind, data)
        if not validation.is_valid or validation.payload is None:
            logger.info(
                f"{kind.value} submission rejected: invalid fields "
                f"{sorted(validation.errors)}"
            )
            return SubmissionResult(
                success=False,
                message=VALIDATION_FAILED_MESSAGE,
                errors=validation.errors,
                outcome=SubmissionOutcome.REJECTED_VALIDATION,
            )
        payload = validation.payload

        identifier = build_identifier(kind.value, metadata.ip_address)
        decision = self.rate_limiter.check(identifier, self.rate_limit_policy)
        if not decision.allowed:
            return SubmissionResult(
                success=False,
                message=RATE_LIMITED_MESSAGE,
                remaining_attempts=0,
                reset_at=decision.reset_at,
                outcome=SubmissionOutcome.REJECTED_RATE_LIMITED,
            )

        locale = self._resolve_locale(payload.locale, metadata.locale)
        record = SubmissionRecord(payload=payload, metadata=metadata, locale=locale)
        idempotency_key = payload.idempotency_key or uuid.uuid4().hex

        def on_retry(error: Exception, attempt: int) -> None:
            logger.warning(
                f"{kind.value} save attempt {attempt} failed, retrying: {error}"
            )

        retry = self.retry_policy.run(
            lambda: self.store.persist(record, idempotency_key), on_retry=on_retry
        )
        if not retry.succeeded or retry.value is None:
            logger.error(
                f"{kind.value} submission could not be saved after "
                f"{retry.attempts} attempts: {retry.error}"
            )
            return SubmissionResult(
                success=False,
                message=PERSIST_FAILED_MESSAGE,
                outcome=SubmissionOutcome.FAILED_PERSIST,
            )
        stored = retry.value

        if stored.created:
            self._notify(payload, stored, locale)

        return self._success(payload, stored, decision.remaining)

    def _resolve_locale(self, *candidates: str | None) -> str:
        for candidate in candidates:
            if candidate and candidate in self.settings.SUPPORTED_LOCALES:
                return candidate
        return self.settings.DEFAULT_LOCALE

    def _notify(
        self,
        payload: Union[ContactPayload, EnrollmentPayload],
        stored: StoredSubmission,
        locale: str,
    ) -> None:
        try:
            self.notifier.notify_submission(
                payload.model_dump(mode="json"), stored, locale
            )
        except Exception as e:
            logger.error(f"Failed to send notifications for {stored.id}: {e!r}")

    def _success(
        self,
        payload: Union[ContactPayload, EnrollmentPayload],
        stored: StoredSubmission,
        remaining: int,
    ) -> SubmissionResult:
        if isinstance(payload, ContactPayload):
            response_time = get_response_time(payload.urgency)
            message = f"Thank you for contacting us! We'll respond {response_time}."
            next_steps = [
                "You'll receive a confirmation email shortly",
                f"Our team will respond {response_time}",
            ]
        elif stored.status == SubmissionStatus.WAITLISTED:
            message = ENROLLMENT_WAITLIST_MESSAGE
            next_steps = list(ENROLLMENT_WAITLIST_STEPS)
        else:
            message = ENROLLMENT_PENDING_MESSAGE
            next_steps = list(ENROLLMENT_PENDING_STEPS)

        return SubmissionResult(
            success=True,
            submission_id=stored.id,
            status=stored.status,
            message=message,
            next_steps=next_steps,
            remaining_attempts=remaining,
            outcome=SubmissionOutcome.SUCCEEDED,
        )


def build_submission_service(
    db: Session, app_settings: Settings = settings
) -> SubmissionService:
    """Wire the pipeline to the database session of the current request."""
    return SubmissionService(
        validator=ValidationService(),
        rate_limiter=RateLimitService(db),
        store=SqlSubmissionStore(
            db, ProgramCapacityPolicy(db, app_settings.PROGRAM_CAPACITY)
        ),
        notifier=NotificationService(app_settings=app_settings),
        app_settings=app_settings,
    )
