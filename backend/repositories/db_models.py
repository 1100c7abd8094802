"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.
"""

import enum
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from repositories.database import Base


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class SubmissionKind(str, enum.Enum):
    CONTACT = "contact"
    ENROLLMENT = "enrollment"


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"


class DocumentCategory(str, enum.Enum):
    """Portal document categories."""

    ENROLLMENT = "enrollment"
    MEDICAL = "medical"
    EMERGENCY = "emergency"
    AUTHORIZATION = "authorization"
    FINANCIAL = "financial"
    OTHER = "other"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReferrerType(str, enum.Enum):
    CURRENT_PARENT = "current_parent"
    PAST_PARENT = "past_parent"
    STAFF = "staff"
    COMMUNITY_MEMBER = "community_member"
    OTHER = "other"


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    TOURING = "touring"
    ENROLLED = "enrolled"
    DECLINED = "declined"
    EXPIRED = "expired"


class ResourceType(str, enum.Enum):
    ARTICLE = "article"
    GUIDE = "guide"
    CHECKLIST = "checklist"
    VIDEO = "video"
    DOWNLOAD = "download"
    LINK = "link"


class Submission(Base):
    """
    A contact or enrollment form submission.

    Written once by the submission store and never updated here. Common
    columns are denormalized for staff queries; the full normalized payload
    lives in `fields`.
    """

    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    public_id: Mapped[str] = mapped_column(
        String(40), unique=True, index=True, nullable=False
    )
    kind: Mapped[SubmissionKind] = mapped_column(Enum(SubmissionKind), nullable=False)
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus), default=SubmissionStatus.PENDING, nullable=False
    )
    idempotency_key: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    program: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    urgency: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    fields: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    locale: Mapped[str] = mapped_column(String(5), nullable=False, default="en")
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    __table_args__ = (
        Index("ix_submissions_kind_program_status", "kind", "program", "status"),
    )


class RateLimitRecord(Base):
    """Attempt counter for one identifier (e.g. "contact:203.0.113.7")."""

    __tablename__ = "rate_limit_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    identifier: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    window_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    blocked_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )


class Document(Base):
    """A file uploaded through the parent portal."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    public_id: Mapped[str] = mapped_column(
        String(36), unique=True, index=True, nullable=False
    )
    parent_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[DocumentCategory] = mapped_column(
        Enum(DocumentCategory), nullable=False
    )
    child_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.PENDING, nullable=False
    )
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Referral(Base):
    """A family referred by a parent, staff member or community member."""

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    referrer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    referrer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    referrer_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    referrer_type: Mapped[ReferrerType] = mapped_column(
        Enum(ReferrerType), nullable=False
    )
    referred_family_name: Mapped[str] = mapped_column(String(100), nullable=False)
    referred_parent_name: Mapped[str] = mapped_column(String(100), nullable=False)
    referred_email: Mapped[str] = mapped_column(String(255), nullable=False)
    referred_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    referred_children_count: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[ReferralStatus] = mapped_column(
        Enum(ReferralStatus), default=ReferralStatus.PENDING, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class Resource(Base):
    """An article, guide or download in the parent resource library."""

    __tablename__ = "resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resource_type: Mapped[ResourceType] = mapped_column(
        Enum(ResourceType), nullable=False
    )
    category: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    external_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    author: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reading_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
