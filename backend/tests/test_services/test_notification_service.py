"""Tests for NotificationService."""

from datetime import date
from unittest.mock import Mock

import pytest

from models.config import Settings
from models.exceptions import ValidationException
from models.schemas import StoredSubmission, WelcomeEmailRequest
from repositories.db_models import SubmissionStatus
from services.email_service import EmailProvider
from services.notification_service import (
    NotificationKind,
    NotificationService,
    build_welcome_data,
)

STAFF = "staff@test.com"


@pytest.fixture
def provider() -> Mock:
    provider = Mock(spec=EmailProvider)
    provider.send.return_value = True
    return provider


@pytest.fixture
def notifier(provider: Mock) -> NotificationService:
    return NotificationService(
        provider=provider, app_settings=Settings(STAFF_EMAIL=STAFF)
    )


@pytest.fixture
def contact_data(contact_payload) -> dict:
    return contact_payload.model_dump(mode="json")


@pytest.fixture
def enrollment_data(enrollment_payload) -> dict:
    return enrollment_payload.model_dump(mode="json")


def _sent(provider: Mock) -> dict[str, tuple[str, str, str]]:
    """Recipient -> (subject, html, text) for every send call."""
    return {c.args[0]: c.args[1:] for c in provider.send.call_args_list}


class TestNotifySubmission:
    """Tests for staff and confirmation emails."""

    def test_contact_sends_staff_and_confirmation(
        self, notifier, provider, contact_data
    ) -> None:
        """A contact produces two independent emails."""
        stored = StoredSubmission(id="CON-20250115-0A1B2C3D", status=SubmissionStatus.PENDING)

        outcomes = notifier.notify_submission(contact_data, stored, "en")

        assert outcomes[NotificationKind.CONTACT_STAFF].success
        assert outcomes[NotificationKind.CONTACT_CONFIRMATION].success
        sent = _sent(provider)
        assert sent[STAFF][0] == "[NORMAL] New Contact Form: Schedule a Tour"
        assert "CON-20250115-0A1B2C3D" in sent[STAFF][2]
        assert sent["jane.doe@example.com"][0] == (
            "We received your message - Great Beginnings Day Care"
        )

    def test_confirmation_is_localized(self, notifier, provider, contact_data) -> None:
        """The confirmation uses the submission locale."""
        stored = StoredSubmission(id="CON-20250115-0A1B2C3D", status=SubmissionStatus.PENDING)

        notifier.notify_submission(contact_data, stored, "es")

        subject, _, text = _sent(provider)["jane.doe@example.com"]
        assert subject.startswith("Hemos recibido su mensaje")
        assert "Número de referencia: CON-20250115-0A1B2C3D" in text

    def test_unknown_locale_falls_back_to_english(
        self, notifier, provider, contact_data
    ) -> None:
        """Unsupported locales get English copy."""
        stored = StoredSubmission(id="CON-20250115-0A1B2C3D", status=SubmissionStatus.PENDING)

        notifier.notify_submission(contact_data, stored, "fr")

        assert _sent(provider)["jane.doe@example.com"][0].startswith("We received")

    def test_waitlisted_enrollment(self, notifier, provider, enrollment_data) -> None:
        """Waitlisted applications are flagged for staff and explained to parents."""
        stored = StoredSubmission(
            id="ENR-20250115-0A1B2C3D", status=SubmissionStatus.WAITLISTED
        )

        outcomes = notifier.notify_submission(enrollment_data, stored, "en")

        assert set(outcomes) == {
            NotificationKind.ENROLLMENT_STAFF,
            NotificationKind.ENROLLMENT_CONFIRMATION,
        }
        sent = _sent(provider)
        assert sent[STAFF][0] == (
            "[WAITLIST] New Enrollment Application: Sofia Lopez - Toddler Program"
        )
        assert "added to our waitlist" in sent["maria@example.com"][2]

    def test_pending_enrollment_has_no_waitlist_prefix(
        self, notifier, provider, enrollment_data
    ) -> None:
        """Pending applications use the plain staff subject."""
        stored = StoredSubmission(id="ENR-20250115-0A1B2C3D", status=SubmissionStatus.PENDING)

        notifier.notify_submission(enrollment_data, stored, "en")

        assert _sent(provider)[STAFF][0].startswith("New Enrollment Application")

    def test_one_failure_does_not_block_the_other(
        self, notifier, provider, contact_data
    ) -> None:
        """A staff send failure still lets the confirmation go out."""
        provider.send.side_effect = [RuntimeError("SMTP down"), True]
        stored = StoredSubmission(id="CON-20250115-0A1B2C3D", status=SubmissionStatus.PENDING)

        outcomes = notifier.notify_submission(contact_data, stored, "en")

        assert not outcomes[NotificationKind.CONTACT_STAFF].success
        assert outcomes[NotificationKind.CONTACT_STAFF].error == "SMTP down"
        assert outcomes[NotificationKind.CONTACT_CONFIRMATION].success
        assert provider.send.call_count == 2


class TestSend:
    """Tests for NotificationService.send."""

    def test_provider_rejection_is_reported(self, notifier, provider, contact_data) -> None:
        """A provider returning False gives a failed outcome, not an exception."""
        provider.send.return_value = False

        outcome = notifier.send(NotificationKind.CONTACT_STAFF, contact_data, STAFF)

        assert not outcome.success
        assert outcome.error == "Email provider rejected the message"

    def test_missing_recipient(self, notifier, provider, contact_data) -> None:
        """No recipient means nothing is sent."""
        outcome = notifier.send(NotificationKind.CONTACT_STAFF, contact_data, "")

        assert outcome.error == "No recipient configured"
        provider.send.assert_not_called()

    def test_sanitized_values_are_escaped_once(
        self, notifier, provider, contact_data
    ) -> None:
        """Entity-escaped input is not double escaped in HTML and reads plainly in text."""
        data = {**contact_data, "message": "Tom &amp; Jerry &lt;3 naps"}

        notifier.send(NotificationKind.CONTACT_STAFF, data, STAFF)

        _, _, html_body, text_body = provider.send.call_args.args
        assert "Tom &amp; Jerry &lt;3 naps" in html_body
        assert "&amp;amp;" not in html_body
        assert "Tom & Jerry <3 naps" in text_body

    def test_document_upload_notification(self, notifier, provider) -> None:
        """Staff hear about portal uploads."""
        outcome = notifier.notify_document_upload(
            {
                "parent_email": "maria@example.com",
                "child_name": "Sofia Lopez",
                "category": "medical",
                "file_names": ["shots.pdf", "allergy.pdf"],
            }
        )

        assert outcome.success
        recipient, subject, _, text = provider.send.call_args.args
        assert recipient == STAFF
        assert subject == "Document Received (2 files) - Great Beginnings Day Care"
        assert "shots.pdf, allergy.pdf" in text


@pytest.fixture
def welcome_request() -> WelcomeEmailRequest:
    return WelcomeEmailRequest(
        parent_name="Maria Lopez",
        child_name="Sofia",
        start_date="2026-11-02",
        recipient_email="  Maria.Lopez@Example.com ",
        classroom="Sunflowers & Bees",
        teacher="Ms. Ana",
    )


class TestBuildWelcomeData:
    """Tests for normalizing welcome email requests."""

    def test_normalizes_fields(self, welcome_request) -> None:
        """Email is lowercased, dates parsed and names sanitized."""
        data = build_welcome_data(welcome_request)

        assert data["recipient_email"] == "maria.lopez@example.com"
        assert data["start_date"] == date(2026, 11, 2)
        assert data["classroom"] == "Sunflowers &amp; Bees"
        assert data["locale"] == "en"

    def test_missing_fields_are_named(self) -> None:
        """Every missing required field is listed by its form name."""
        request = WelcomeEmailRequest(child_name="Sofia", start_date="  ")

        with pytest.raises(ValidationException) as exc_info:
            build_welcome_data(request)

        assert (
            exc_info.value.message
            == "Missing required fields: parentName, startDate, recipientEmail"
        )
        assert set(exc_info.value.field_errors) == {
            "parentName",
            "startDate",
            "recipientEmail",
        }

    def test_invalid_start_date(self, welcome_request) -> None:
        """A start date that is not ISO 8601 is rejected."""
        request = welcome_request.model_copy(update={"start_date": "11/02/2026"})

        with pytest.raises(ValidationException) as exc_info:
            build_welcome_data(request)

        assert "startDate" in exc_info.value.field_errors

    def test_accepts_datetime_start(self, welcome_request) -> None:
        """A full ISO timestamp is reduced to its date."""
        request = welcome_request.model_copy(
            update={"start_date": "2026-11-02T08:30:00Z"}
        )

        assert build_welcome_data(request)["start_date"] == date(2026, 11, 2)

    def test_invalid_email(self, welcome_request) -> None:
        """A malformed recipient address is rejected."""
        request = welcome_request.model_copy(update={"recipient_email": "maria@"})

        with pytest.raises(ValidationException) as exc_info:
            build_welcome_data(request)

        assert "recipientEmail" in exc_info.value.field_errors

    def test_unknown_locale_falls_back_to_english(self, welcome_request) -> None:
        """Only supported locales are kept."""
        request = welcome_request.model_copy(update={"locale": "fr"})

        assert build_welcome_data(request)["locale"] == "en"


class TestWelcomeEmail:
    """Tests for the first-day welcome email."""

    def test_sends_to_family(self, notifier, provider, welcome_request) -> None:
        """The welcome email goes to the family with the first-day details."""
        outcome = notifier.send_welcome(build_welcome_data(welcome_request))

        assert outcome.success
        recipient, subject, html_body, text_body = provider.send.call_args.args
        assert recipient == "maria.lopez@example.com"
        assert subject == (
            "Welcome to Great Beginnings Day Care! Sofia's first day is 11/02/2026"
        )
        assert "Dear Maria Lopez," in text_body
        assert "Start date: 11/02/2026" in text_body
        assert "Classroom: Sunflowers & Bees" in text_body
        assert "Teacher: Ms. Ana" in text_body
        assert "Sunflowers &amp; Bees" in html_body
        assert "&amp;amp;" not in html_body

    def test_localized_copy_and_date_format(
        self, notifier, provider, welcome_request
    ) -> None:
        """Polish families get Polish copy and day-first dates."""
        request = welcome_request.model_copy(update={"locale": "pl"})

        notifier.send_welcome(build_welcome_data(request))

        _, subject, _, text_body = provider.send.call_args.args
        assert subject.startswith("Witamy w Great Beginnings Day Care!")
        assert "02.11.2026" in subject
        assert "Data rozpoczęcia: 02.11.2026" in text_body
        assert "Z serdecznymi pozdrowieniami," in text_body

    def test_optional_rows_are_omitted(self, notifier, provider, welcome_request) -> None:
        """Classroom and teacher are left out when not assigned yet."""
        request = welcome_request.model_copy(update={"classroom": None, "teacher": None})

        notifier.send_welcome(build_welcome_data(request))

        text_body = provider.send.call_args.args[3]
        assert "Classroom:" not in text_body
        assert "Teacher:" not in text_body

    def test_provider_failure_is_reported(
        self, notifier, provider, welcome_request
    ) -> None:
        """A rejected send is reported, not raised."""
        provider.send.return_value = False

        outcome = notifier.send_welcome(build_welcome_data(welcome_request))

        assert not outcome.success
        assert outcome.error == "Email provider rejected the message"
