"""
Email notifications for form submissions, document uploads and the welcome
email staff send before a child's first day.

Every send is best-effort: provider failures and exceptions are logged and
reported as a NotificationOutcome, never raised to the caller.

Form values arrive sanitized (markup already entity-escaped), so they are
unescaped once before being escaped again for HTML bodies.
"""

import html
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from loguru import logger
from pydantic.alias_generators import to_camel

from core.logging_config import mask_email
from helpers.locale import LOCALE_CONFIG
from helpers.sanitization import sanitize_text
from models.config import Settings, settings
from models.exceptions import NotificationException, ValidationException
from models.schemas import (
    EMAIL_PATTERN,
    NotificationOutcome,
    StoredSubmission,
    WelcomeEmailRequest,
)
from repositories.db_models import SubmissionStatus
from services.email_service import EmailProvider, get_email_provider


class NotificationKind(str, Enum):
    CONTACT_STAFF = "contact_staff"
    CONTACT_CONFIRMATION = "contact_confirmation"
    ENROLLMENT_STAFF = "enrollment_staff"
    ENROLLMENT_CONFIRMATION = "enrollment_confirmation"
    DOCUMENT_UPLOAD_STAFF = "document_upload_staff"
    WELCOME = "welcome"


SUBJECT_LABELS = {
    "enrollment": "Enrollment Inquiry",
    "tour": "Schedule a Tour",
    "general": "General Question",
    "programs": "Programs Information",
    "billing": "Billing Question",
    "emergency": "Emergency Contact",
    "feedback": "Feedback",
    "other": "Other",
}

PROGRAM_LABELS = {
    "infant": "Infant Care",
    "toddler": "Toddler Program",
    "preschool": "Preschool",
    "prek": "Pre-K",
    "schoolage": "School Age",
}

# Localized copy for confirmation and welcome emails
CONFIRMATION_COPY: dict[str, dict[str, str]] = {
    "en": {
        "contact_subject": "We received your message - {business}",
        "enrollment_subject": "Enrollment Application Received - {business}",
        "greeting": "Dear {name},",
        "contact_body": "Thank you for contacting us. We received your message and will respond soon.",
        "enrollment_body": "Thank you for applying. Your enrollment application for {child} has been received.",
        "waitlist_body": "The program is currently full, so {child} has been added to our waitlist.",
        "reference": "Reference number",
        "questions": "Questions? Call us at {phone}.",
        "signature": "Warm regards,",
        "welcome_subject": "Welcome to {business}! {child}'s first day is {date}",
        "welcome_body": "We are thrilled to welcome {child} to our family. Our team is getting everything ready for a wonderful first day.",
        "welcome_checklist": "Please bring a change of clothes, diapers or pull-ups if needed and a comfort item for nap time. Label everything with {child}'s name.",
        "welcome_details": "Your first day details",
        "start_date": "Start date",
        "classroom": "Classroom",
        "teacher": "Teacher",
    },
    "es": {
        "contact_subject": "Hemos recibido su mensaje - {business}",
        "enrollment_subject": "Solicitud de inscripción recibida - {business}",
        "greeting": "Estimado/a {name}:",
        "contact_body": "Gracias por contactarnos. Hemos recibido su mensaje y le responderemos pronto.",
        "enrollment_body": "Gracias por su solicitud. Hemos recibido la solicitud de inscripción de {child}.",
        "waitlist_body": "El programa está completo, por lo que {child} ha sido añadido/a a nuestra lista de espera.",
        "reference": "Número de referencia",
        "questions": "¿Preguntas? Llámenos al {phone}.",
        "signature": "Saludos cordiales,",
        "welcome_subject": "¡Bienvenidos a {business}! El primer día de {child} es el {date}",
        "welcome_body": "Estamos encantados de dar la bienvenida a {child} a nuestra familia. Nuestro equipo está preparando todo para un primer día maravilloso.",
        "welcome_checklist": "Por favor traiga una muda de ropa, pañales si los necesita y un objeto de consuelo para la siesta. Marque todo con el nombre de {child}.",
        "welcome_details": "Detalles del primer día",
        "start_date": "Fecha de inicio",
        "classroom": "Salón",
        "teacher": "Maestra",
    },
    "pl": {
        "contact_subject": "Otrzymaliśmy Twoją wiadomość - {business}",
        "enrollment_subject": "Otrzymaliśmy wniosek o zapis - {business}",
        "greeting": "Dzień dobry {name},",
        "contact_body": "Dziękujemy za kontakt. Otrzymaliśmy Twoją wiadomość i wkrótce odpowiemy.",
        "enrollment_body": "Dziękujemy za zgłoszenie. Otrzymaliśmy wniosek o zapis dla {child}.",
        "waitlist_body": "Program jest obecnie pełny, dlatego {child} zostało dopisane do listy oczekujących.",
        "reference": "Numer referencyjny",
        "questions": "Pytania? Zadzwoń do nas: {phone}.",
        "signature": "Z serdecznymi pozdrowieniami,",
        "welcome_subject": "Witamy w {business}! Pierwszy dzień {child}: {date}",
        "welcome_body": "Z radością witamy {child} w naszej rodzinie. Nasz zespół przygotowuje wszystko na wspaniały pierwszy dzień.",
        "welcome_checklist": "Prosimy przynieść ubranie na zmianę, pieluszki w razie potrzeby oraz ulubioną przytulankę na drzemkę. Wszystko prosimy podpisać imieniem {child}.",
        "welcome_details": "Szczegóły pierwszego dnia",
        "start_date": "Data rozpoczęcia",
        "classroom": "Sala",
        "teacher": "Opiekunka",
    },
    "uk": {
        "contact_subject": "Ми отримали ваше повідомлення - {business}",
        "enrollment_subject": "Заявку на зарахування отримано - {business}",
        "greeting": "Шановний(а) {name},",
        "contact_body": "Дякуємо, що звернулися до нас. Ми отримали ваше повідомлення і незабаром відповімо.",
        "enrollment_body": "Дякуємо за заявку. Ми отримали заявку на зарахування для {child}.",
        "waitlist_body": "Наразі програма заповнена, тому {child} додано до списку очікування.",
        "reference": "Номер заявки",
        "questions": "Маєте запитання? Телефонуйте нам: {phone}.",
        "signature": "З найкращими побажаннями,",
        "welcome_subject": "Ласкаво просимо до {business}! Перший день {child}: {date}",
        "welcome_body": "Ми раді вітати {child} у нашій родині. Наша команда готує все для чудового першого дня.",
        "welcome_checklist": "Будь ласка, принесіть змінний одяг, підгузки за потреби та улюблену іграшку для денного сну. Підпишіть усі речі іменем {child}.",
        "welcome_details": "Деталі першого дня",
        "start_date": "Дата початку",
        "classroom": "Група",
        "teacher": "Вихователь",
    },
}

_HTML_WRAPPER = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f5f5f5;">
    <div style="background: white; padding: 30px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1);">
{content}
        <p style="color: #888; font-size: 12px; margin-top: 30px; padding-top: 20px; border-top: 1px solid #eee;">
            {footer}
        </p>
    </div>
</body>
</html>"""


def _plain(value: Any) -> str:
    """Undo the sanitizer's entity escaping for plain-text use."""
    if value is None:
        return ""
    return html.unescape(str(value))


def _safe(value: Any) -> str:
    """Escape a (sanitized) value exactly once for HTML."""
    return html.escape(_plain(value))


def _rows_html(rows: list[tuple[str, Any]]) -> str:
    cells = []
    for label, value in rows:
        if value in (None, ""):
            continue
        cells.append(
            "            <tr>\n"
            f'                <td style="padding: 8px 0; color: #666; width: 160px;"><strong>{html.escape(label)}:</strong></td>\n'
            f'                <td style="padding: 8px 0; color: #333;">{_safe(value)}</td>\n'
            "            </tr>"
        )
    return (
        '        <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">\n'
        + "\n".join(cells)
        + "\n        </table>"
    )


def _rows_text(rows: list[tuple[str, Any]]) -> str:
    return "\n".join(
        f"{label}: {_plain(value)}" for label, value in rows if value not in (None, "")
    )


def _format_date(value: date, locale: str) -> str:
    """Format a date with the locale's display pattern (e.g. dd.MM.yyyy)."""
    pattern = LOCALE_CONFIG.get(locale, LOCALE_CONFIG["en"])["date_format"]
    strftime_pattern = (
        pattern.replace("yyyy", "%Y").replace("MM", "%m").replace("dd", "%d")
    )
    return value.strftime(strftime_pattern)


WELCOME_REQUIRED_FIELDS = ("parent_name", "child_name", "start_date", "recipient_email")
WELCOME_DATE_MESSAGE = "Invalid start date format. Please use ISO date format."


def build_welcome_data(request: WelcomeEmailRequest) -> dict[str, Any]:
    """
    Normalize a welcome email request into template data.

    Raises:
        ValidationException: Required fields missing, a start date that is not
            ISO 8601 or a malformed recipient address. Field errors are keyed
            by form (camelCase) name.
    """
    missing = [name for name in WELCOME_REQUIRED_FIELDS if not getattr(request, name)]
    if missing:
        aliases = [to_camel(name) for name in missing]
        raise ValidationException(
            f"Missing required fields: {', '.join(aliases)}",
            field_errors={alias: ["This field is required"] for alias in aliases},
        )

    try:
        start_date = datetime.fromisoformat(str(request.start_date)).date()
    except ValueError as e:
        raise ValidationException(
            WELCOME_DATE_MESSAGE, field_errors={"startDate": [WELCOME_DATE_MESSAGE]}
        ) from e

    recipient = str(request.recipient_email).lower()
    if not EMAIL_PATTERN.match(recipient):
        raise ValidationException(
            "Please enter a valid email address",
            field_errors={"recipientEmail": ["Please enter a valid email address"]},
        )

    locale = request.locale if request.locale in CONFIRMATION_COPY else "en"
    return {
        "parent_name": sanitize_text(request.parent_name),
        "child_name": sanitize_text(request.child_name),
        "start_date": start_date,
        "recipient_email": recipient,
        "classroom": sanitize_text(request.classroom),
        "teacher": sanitize_text(request.teacher),
        "locale": locale,
    }


class NotificationService:
    """Builds and sends staff and confirmation emails."""

    def __init__(
        self,
        provider: Optional[EmailProvider] = None,
        app_settings: Settings = settings,
    ) -> None:
        self.provider = provider or get_email_provider(app_settings)
        self.settings = app_settings

    def send(
        self,
        kind: NotificationKind,
        data: Mapping[str, Any],
        recipient: str,
    ) -> NotificationOutcome:
        """
        Render and send one notification.

        Args:
            kind: Which template to use.
            data: Template data (normalized submission fields plus
                submission_id, status and locale where relevant).
            recipient: Destination address.

        Returns:
            NotificationOutcome; failures are reported, never raised.
        """
        if not recipient:
            logger.warning(f"Notification {kind.value} skipped: no recipient")
            return NotificationOutcome(success=False, error="No recipient configured")

        try:
            subject, html_body, text_body = self._build(kind, data)
            if not self.provider.send(recipient, subject, html_body, text_body):
                raise NotificationException("Email provider rejected the message")
        except NotificationException as e:
            logger.warning(
                f"Notification {kind.value} to {mask_email(recipient)} was not delivered",
                correlation_id=e.correlation_id,
            )
            return NotificationOutcome(success=False, error=e.message)
        except Exception as e:
            logger.error(
                f"Notification {kind.value} to {mask_email(recipient)} failed: {e!r}"
            )
            return NotificationOutcome(success=False, error=str(e) or type(e).__name__)

        logger.info(f"Notification {kind.value} sent to {mask_email(recipient)}")
        return NotificationOutcome(success=True)

    def notify_submission(
        self,
        data: Mapping[str, Any],
        stored: StoredSubmission,
        locale: str,
    ) -> dict[NotificationKind, NotificationOutcome]:
        """
        Send the staff notification and the submitter confirmation.

        The two sends are independent: a failure of one does not prevent
        the other.
        """
        context = {
            **data,
            "submission_id": stored.id,
            "status": stored.status.value,
            "locale": locale,
        }
        if data.get("kind") == "enrollment":
            staff_kind = NotificationKind.ENROLLMENT_STAFF
            confirmation_kind = NotificationKind.ENROLLMENT_CONFIRMATION
        else:
            staff_kind = NotificationKind.CONTACT_STAFF
            confirmation_kind = NotificationKind.CONTACT_CONFIRMATION

        return {
            staff_kind: self.send(staff_kind, context, self.settings.STAFF_EMAIL),
            confirmation_kind: self.send(
                confirmation_kind, context, str(data.get("email") or "")
            ),
        }

    def notify_document_upload(self, data: Mapping[str, Any]) -> NotificationOutcome:
        return self.send(
            NotificationKind.DOCUMENT_UPLOAD_STAFF, data, self.settings.STAFF_EMAIL
        )

    def send_welcome(self, data: Mapping[str, Any]) -> NotificationOutcome:
        """Send first-day details to a family (data from build_welcome_data)."""
        return self.send(
            NotificationKind.WELCOME, data, str(data.get("recipient_email") or "")
        )

    # Template builders, each returning (subject, html_body, text_body)

    def _build(
        self, kind: NotificationKind, data: Mapping[str, Any]
    ) -> tuple[str, str, str]:
        builders = {
            NotificationKind.CONTACT_STAFF: self._build_contact_staff,
            NotificationKind.CONTACT_CONFIRMATION: self._build_contact_confirmation,
            NotificationKind.ENROLLMENT_STAFF: self._build_enrollment_staff,
            NotificationKind.ENROLLMENT_CONFIRMATION: self._build_enrollment_confirmation,
            NotificationKind.DOCUMENT_UPLOAD_STAFF: self._build_document_upload_staff,
            NotificationKind.WELCOME: self._build_welcome,
        }
        return builders[kind](data)

    def _wrap(self, content: str) -> str:
        footer = f"Sent by the {html.escape(self.settings.BUSINESS_NAME)} website."
        return _HTML_WRAPPER.format(content=content, footer=footer)

    def _build_contact_staff(self, data: Mapping[str, Any]) -> tuple[str, str, str]:
        urgency = str(data.get("urgency") or "normal").upper()
        subject_label = SUBJECT_LABELS.get(str(data.get("subject")), "Other")
        email_subject = f"[{urgency}] New Contact Form: {subject_label}"

        rows = [
            ("Reference", data.get("submission_id")),
            ("From", data.get("name")),
            ("Email", data.get("email")),
            ("Phone", data.get("phone")),
            ("Subject", subject_label),
            ("Urgency", urgency),
            ("Preferred contact", data.get("preferred_contact_method")),
            ("Child name", data.get("child_name")),
            ("Child age group", data.get("child_age")),
            ("Language", str(data.get("locale") or "en").upper()),
        ]

        text_body = f"""New contact form submission

{_rows_text(rows)}

Message:
{_plain(data.get("message"))}
"""
        content = f"""        <h2 style="color: #333; margin-top: 0; border-bottom: 2px solid #F59E0B; padding-bottom: 10px;">
            New Contact Form Submission
        </h2>
{_rows_html(rows)}
        <div style="background: #f8f9fa; padding: 20px; border-radius: 6px; margin-top: 20px;">
            <h3 style="color: #333; margin-top: 0;">Message:</h3>
            <p style="color: #444; line-height: 1.6; white-space: pre-wrap;">{_safe(data.get("message"))}</p>
        </div>"""
        return email_subject, self._wrap(content), text_body

    def _build_enrollment_staff(self, data: Mapping[str, Any]) -> tuple[str, str, str]:
        program = PROGRAM_LABELS.get(str(data.get("program")), str(data.get("program")))
        child = _plain(data.get("child_name"))
        prefix = "[WAITLIST] " if data.get("status") == SubmissionStatus.WAITLISTED.value else ""
        email_subject = f"{prefix}New Enrollment Application: {child} - {program}"

        rows = [
            ("Reference", data.get("submission_id")),
            ("Status", data.get("status")),
            ("Parent", data.get("parent_name")),
            ("Email", data.get("email")),
            ("Phone", data.get("phone")),
            ("Alternate phone", data.get("alternate_phone")),
            (
                "Address",
                f"{_plain(data.get('address'))}, {_plain(data.get('city'))}, "
                f"{_plain(data.get('state'))} {_plain(data.get('zip_code'))}",
            ),
            ("Child", data.get("child_name")),
            ("Birth date", data.get("child_birth_date")),
            ("Program", program),
            ("Schedule", data.get("schedule")),
            ("Desired start", data.get("desired_start_date")),
            ("Allergies", data.get("allergies")),
            ("Medications", data.get("medications")),
            ("Special needs", data.get("special_needs")),
            (
                "Emergency contact",
                f"{_plain(data.get('emergency_contact'))} "
                f"({_plain(data.get('emergency_relationship'))}) "
                f"{_plain(data.get('emergency_phone'))}",
            ),
            ("Heard about us", data.get("how_heard")),
            ("Additional info", data.get("additional_info")),
            ("Language", str(data.get("locale") or "en").upper()),
        ]

        text_body = f"""New enrollment application

{_rows_text(rows)}
"""
        content = f"""        <h2 style="color: #333; margin-top: 0; border-bottom: 2px solid #10B981; padding-bottom: 10px;">
            New Enrollment Application
        </h2>
{_rows_html(rows)}"""
        return email_subject, self._wrap(content), text_body

    def _confirmation_copy(self, data: Mapping[str, Any]) -> dict[str, str]:
        locale = str(data.get("locale") or "en")
        return CONFIRMATION_COPY.get(locale, CONFIRMATION_COPY["en"])

    def _build_confirmation(
        self,
        subject_template: str,
        name: str,
        paragraphs: list[str],
        copy: dict[str, str],
        reference: str,
    ) -> tuple[str, str, str]:
        business = self.settings.BUSINESS_NAME
        phone = self.settings.BUSINESS_PHONE
        email_subject = subject_template.format(business=business)
        greeting = copy["greeting"].format(name=name)
        questions = copy["questions"].format(phone=phone)

        body_text = "\n\n".join(paragraphs)
        text_body = f"""{greeting}

{body_text}

{copy["reference"]}: {reference}

{questions}

{copy["signature"]}
{business}
"""
        body_html = "\n".join(
            f'        <p style="color: #444; line-height: 1.6;">{html.escape(p)}</p>'
            for p in paragraphs
        )
        content = f"""        <p>{html.escape(greeting)}</p>
{body_html}
        <div style="background: #f8f9fa; padding: 15px; border-radius: 6px; margin: 20px 0;">
            <p style="margin: 0; color: #666;"><strong>{html.escape(copy["reference"])}:</strong> {html.escape(reference)}</p>
        </div>
        <p style="color: #444;">{html.escape(questions)}</p>
        <p style="color: #888; font-size: 14px;">{html.escape(copy["signature"])}<br>{html.escape(business)}</p>"""
        return email_subject, self._wrap(content), text_body

    def _build_contact_confirmation(
        self, data: Mapping[str, Any]
    ) -> tuple[str, str, str]:
        copy = self._confirmation_copy(data)
        return self._build_confirmation(
            copy["contact_subject"],
            _plain(data.get("name")),
            [copy["contact_body"]],
            copy,
            str(data.get("submission_id") or ""),
        )

    def _build_enrollment_confirmation(
        self, data: Mapping[str, Any]
    ) -> tuple[str, str, str]:
        copy = self._confirmation_copy(data)
        child = _plain(data.get("child_name"))
        paragraphs = [copy["enrollment_body"].format(child=child)]
        if data.get("status") == SubmissionStatus.WAITLISTED.value:
            paragraphs.append(copy["waitlist_body"].format(child=child))
        return self._build_confirmation(
            copy["enrollment_subject"],
            _plain(data.get("parent_name")),
            paragraphs,
            copy,
            str(data.get("submission_id") or ""),
        )

    def _build_welcome(self, data: Mapping[str, Any]) -> tuple[str, str, str]:
        copy = self._confirmation_copy(data)
        locale = str(data.get("locale") or "en")
        business = self.settings.BUSINESS_NAME
        child = _plain(data.get("child_name"))
        start_date = data["start_date"]
        if not isinstance(start_date, date):
            start_date = datetime.fromisoformat(str(start_date)).date()
        display_date = _format_date(start_date, locale)

        email_subject = copy["welcome_subject"].format(
            business=business, child=child, date=display_date
        )
        greeting = copy["greeting"].format(name=_plain(data.get("parent_name")))
        welcome = copy["welcome_body"].format(child=child)
        checklist = copy["welcome_checklist"].format(child=child)
        questions = copy["questions"].format(phone=self.settings.BUSINESS_PHONE)
        rows = [
            (copy["start_date"], display_date),
            (copy["classroom"], data.get("classroom")),
            (copy["teacher"], data.get("teacher")),
        ]

        text_body = f"""{greeting}

{welcome}

{copy["welcome_details"]}
{_rows_text(rows)}

{checklist}

{questions}

{copy["signature"]}
{business}
"""
        content = f"""        <h2 style="color: #333; margin-top: 0; border-bottom: 2px solid #F59E0B; padding-bottom: 10px;">
            {html.escape(email_subject)}
        </h2>
        <p>{html.escape(greeting)}</p>
        <p style="color: #444; line-height: 1.6;">{html.escape(welcome)}</p>
        <h3 style="color: #333;">{html.escape(copy["welcome_details"])}</h3>
{_rows_html(rows)}
        <div style="background: #f8f9fa; padding: 15px; border-radius: 6px; margin: 20px 0;">
            <p style="margin: 0; color: #444; line-height: 1.6;">{html.escape(checklist)}</p>
        </div>
        <p style="color: #444;">{html.escape(questions)}</p>
        <p style="color: #888; font-size: 14px;">{html.escape(copy["signature"])}<br>{html.escape(business)}</p>"""
        return email_subject, self._wrap(content), text_body

    def _build_document_upload_staff(
        self, data: Mapping[str, Any]
    ) -> tuple[str, str, str]:
        file_names = [str(name) for name in data.get("file_names") or []]
        count = len(file_names)
        email_subject = (
            f"Document Received ({count} file{'s' if count != 1 else ''}) - "
            f"{self.settings.BUSINESS_NAME}"
        )
        rows = [
            ("Parent email", data.get("parent_email")),
            ("Child", data.get("child_name")),
            ("Category", data.get("category")),
            ("Files", ", ".join(file_names)),
            ("Expires", data.get("expires_at")),
            ("Notes", data.get("notes")),
        ]
        text_body = f"""New documents uploaded to the parent portal

{_rows_text(rows)}
"""
        content = f"""        <h2 style="color: #333; margin-top: 0; border-bottom: 2px solid #3B82F6; padding-bottom: 10px;">
            Documents Uploaded
        </h2>
{_rows_html(rows)}"""
        return email_subject, self._wrap(content), text_body
