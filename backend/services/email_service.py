"""Email delivery providers.

Supports:
- console: logs emails (development and tests)
- smtp: standard SMTP delivery
- resend: Resend HTTP API via httpx

Providers return True on delivery and False on a handled failure. They do
not retry; the notification layer decides what a failed send means.
"""

import re
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import httpx
from loguru import logger

from core.logging_config import mask_email
from models.config import Settings, settings


class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email."""
        pass


class SMTPProvider(EmailProvider):
    """SMTP email provider."""

    def __init__(self, app_settings: Settings = settings) -> None:
        self.host = app_settings.SMTP_HOST
        self.port = app_settings.SMTP_PORT
        self.user = app_settings.SMTP_USER
        self.password = app_settings.SMTP_PASSWORD
        self.from_email = app_settings.EMAIL_FROM_ADDRESS
        self.from_name = app_settings.EMAIL_FROM_NAME
        self.use_tls = app_settings.SMTP_USE_TLS
        self.use_ssl = app_settings.SMTP_USE_SSL
        self.timeout = app_settings.EMAIL_TIMEOUT_SECONDS

    def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send email via SMTP (implicit SSL on 465 or STARTTLS on 587)."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
                if self.use_tls:
                    server.starttls()

            try:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, to_email, msg.as_string())
            finally:
                server.quit()

            logger.info(f"SMTP: email sent to {mask_email(to_email)}")
            return True

        except smtplib.SMTPRecipientsRefused:
            logger.error(f"SMTP: recipient refused - {mask_email(to_email)}")
            return False
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP: authentication failed - {e.smtp_code}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP: failed to send to {mask_email(to_email)}: {e!r}")
            return False


class ConsoleProvider(EmailProvider):
    """Console email provider for development/testing."""

    def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Log email to console."""
        preview = re.sub(r"<[^>]+>", "", html_body)[:300]
        logger.info(
            f"\n{'=' * 60}\n"
            f"EMAIL (console provider)\n"
            f"To: {to_email}\n"
            f"Subject: {subject}\n"
            f"{'-' * 60}\n"
            f"{text_body}\n"
            f"{'-' * 60}\n"
            f"HTML preview: {preview}\n"
            f"{'=' * 60}"
        )
        return True


class ResendProvider(EmailProvider):
    """Resend HTTP API provider."""

    def __init__(
        self,
        app_settings: Settings = settings,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = app_settings.RESEND_API_KEY
        self.api_url = app_settings.RESEND_API_URL
        self.from_header = (
            f"{app_settings.EMAIL_FROM_NAME} <{app_settings.EMAIL_FROM_ADDRESS}>"
        )
        self.timeout = app_settings.EMAIL_TIMEOUT_SECONDS
        self._transport = transport

    def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """POST the message to Resend."""
        if not self.api_key:
            logger.error("Resend: RESEND_API_KEY is not configured")
            return False

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_header,
                        "to": [to_email],
                        "subject": subject,
                        "html": html_body,
                        "text": text_body,
                    },
                )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning(f"Resend: timeout sending to {mask_email(to_email)}")
            return False
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Resend: HTTP {e.response.status_code} sending to {mask_email(to_email)}"
            )
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Resend: error sending to {mask_email(to_email)}: {e!r}")
            return False

        logger.info(f"Resend: email sent to {mask_email(to_email)}")
        return True


def get_email_provider(app_settings: Settings = settings) -> EmailProvider:
    """Get the configured email provider."""
    provider_name = app_settings.EMAIL_PROVIDER.lower()

    if provider_name == "smtp":
        return SMTPProvider(app_settings)
    elif provider_name == "resend":
        return ResendProvider(app_settings)
    elif provider_name == "console":
        return ConsoleProvider()
    else:
        logger.warning(f"Unknown email provider '{provider_name}', using console")
        return ConsoleProvider()
