"""
Custom domain exceptions for the application.

Services raise these and the centralized handlers in main.py turn them into
HTTP responses. The submission pipeline catches its own expected failures
and folds them into a SubmissionResult instead of letting them escape.

Every exception carries a correlation ID for Sentry and user error reports.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class ValidationException(DomainException):
    """
    Raised when input fails validation.

    Attributes:
        field_errors: Public field name -> list of messages.
    """

    def __init__(
        self,
        message: str = "Please correct the form errors",
        field_errors: dict[str, list[str]] | None = None,
    ):
        super().__init__(message)
        self.field_errors = field_errors or {}


class ConflictException(DomainException):
    """Raised when an operation conflicts with existing data."""

    pass


class TransientStoreException(DomainException):
    """Raised when the datastore is temporarily unreachable. Safe to retry."""

    def __init__(
        self, message: str = "The submission store is temporarily unavailable."
    ):
        super().__init__(message)


class NotificationException(DomainException):
    """Raised by email providers when a message cannot be delivered."""

    def __init__(self, message: str = "Failed to send email."):
        super().__init__(message)


class WeatherServiceUnavailableException(DomainException):
    """Raised when the weather provider is not configured or rejects our key."""

    def __init__(self, message: str = "Weather service not configured"):
        super().__init__(message)


class DocumentValidationException(ValidationException):
    """Raised when an uploaded document is too large or of a disallowed type."""

    pass


# Specific not-found exceptions


class DocumentNotFoundException(NotFoundException):
    """Document not found."""

    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")


class ReferralNotFoundException(NotFoundException):
    """Referral not found."""

    def __init__(self, referral_id: int):
        super().__init__(f"Referral {referral_id} not found")


class ResourceNotFoundException(NotFoundException):
    """Resource not found."""

    def __init__(self, slug: str):
        super().__init__(f"Resource '{slug}' not found")


class ResourceSlugConflictException(ConflictException):
    """A resource with this slug already exists."""

    def __init__(self, slug: str):
        super().__init__(f"A resource with slug '{slug}' already exists")
