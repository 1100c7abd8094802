"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .validation_service import ValidationService
from .rate_limit_service import RateLimitService
from .submission_store import SqlSubmissionStore
from .submission_service import SubmissionService
from .notification_service import NotificationService
from .weather_service import WeatherService
from .document_service import DocumentService
from .referral_service import ReferralService
from .resource_service import ResourceService

__all__ = [
    "ValidationService",
    "RateLimitService",
    "SqlSubmissionStore",
    "SubmissionService",
    "NotificationService",
    "WeatherService",
    "DocumentService",
    "ReferralService",
    "ResourceService",
]
