"""
Repository pattern implementation for data access layer.
"""

from .base import BaseRepository
from .document_repository import DocumentRepository
from .rate_limit_repository import RateLimitRepository
from .referral_repository import ReferralRepository
from .resource_repository import ResourceRepository
from .submission_repository import SubmissionRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "RateLimitRepository",
    "ReferralRepository",
    "ResourceRepository",
    "SubmissionRepository",
]
