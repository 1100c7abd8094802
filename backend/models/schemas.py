import re
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from repositories.db_models import (
    DocumentCategory,
    DocumentStatus,
    ReferralStatus,
    ReferrerType,
    ResourceType,
    SubmissionStatus,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ZIP_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
NAME_PATTERN = re.compile(r"^[^\W\d_]+(?:[\s'.\-][^\W\d_]*)*$")
IDEMPOTENCY_KEY_PATTERN = r"^[A-Za-z0-9_\-]{8,64}$"
MIN_PHONE_DIGITS = 10


class CamelModel(BaseModel):
    """Base model exposing camelCase field names while accepting snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def count_digits(value: str) -> int:
    return sum(1 for ch in value if ch.isdigit())


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value and count_digits(value) < MIN_PHONE_DIGITS:
        raise ValueError("Phone number must have at least 10 digits")
    return value


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value.lower()


def _check_name(value: str) -> str:
    if not NAME_PATTERN.match(value):
        raise ValueError(
            "Name can only contain letters, spaces, hyphens, apostrophes and periods"
        )
    return value


# Contact form enums


class ContactSubject(str, Enum):
    ENROLLMENT = "enrollment"
    TOUR = "tour"
    GENERAL = "general"
    PROGRAMS = "programs"
    BILLING = "billing"
    EMERGENCY = "emergency"
    FEEDBACK = "feedback"
    OTHER = "other"


class AgeGroup(str, Enum):
    INFANT = "infant"
    TODDLER = "toddler"
    PRESCHOOL = "preschool"
    PRE_K = "pre-k"
    SCHOOL_AGE = "school-age"


class ContactMethod(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    EITHER = "either"


class Urgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


# Enrollment form enums


class Program(str, Enum):
    INFANT = "infant"
    TODDLER = "toddler"
    PRESCHOOL = "preschool"
    PREK = "prek"
    SCHOOLAGE = "schoolage"


class Schedule(str, Enum):
    FULLTIME = "fulltime"
    PARTTIME = "parttime"
    DROPIN = "dropin"


# Form payloads (tagged by `kind`)


class ContactPayload(CamelModel):
    """Normalized contact form submission."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    kind: Literal["contact"] = "contact"
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)
    subject: ContactSubject
    message: str = Field(..., min_length=10, max_length=2000)
    child_name: Optional[str] = Field(default=None, max_length=100)
    child_age: Optional[AgeGroup] = None
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL
    urgency: Urgency = Urgency.NORMAL
    consent: bool
    website: Optional[str] = None
    locale: Optional[str] = Field(default=None, max_length=5)
    idempotency_key: Optional[str] = Field(
        default=None, pattern=IDEMPOTENCY_KEY_PATTERN
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("phone", "child_name", "website", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("child_age", mode="before")
    @classmethod
    def empty_age_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("consent")
    @classmethod
    def validate_consent(cls, v: bool) -> bool:
        if not v:
            raise ValueError("You must agree to be contacted")
        return v

    @field_validator("website")
    @classmethod
    def validate_honeypot(cls, v: Optional[str]) -> Optional[str]:
        if v:
            raise ValueError("Invalid submission detected")
        return v


class EnrollmentPayload(CamelModel):
    """Normalized enrollment application."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    kind: Literal["enrollment"] = "enrollment"

    # Parent information
    parent_name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=30)
    alternate_phone: Optional[str] = Field(default=None, max_length=30)
    address: str = Field(..., max_length=200)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=50)
    zip_code: str

    # Child information
    child_name: str = Field(..., min_length=2, max_length=100)
    child_birth_date: date
    program: Program

    # Enrollment details
    desired_start_date: date
    schedule: Schedule = Schedule.FULLTIME

    # Health and emergency
    allergies: Optional[str] = Field(default=None, max_length=1000)
    medications: Optional[str] = Field(default=None, max_length=1000)
    special_needs: Optional[str] = Field(default=None, max_length=1000)
    emergency_contact: str = Field(..., max_length=100)
    emergency_phone: str = Field(..., max_length=30)
    emergency_relationship: str = Field(..., max_length=50)

    # Other
    how_heard: Optional[str] = Field(default=None, max_length=200)
    additional_info: Optional[str] = Field(default=None, max_length=2000)
    locale: Optional[str] = Field(default=None, max_length=5)
    idempotency_key: Optional[str] = Field(
        default=None, pattern=IDEMPOTENCY_KEY_PATTERN
    )

    @field_validator(
        "alternate_phone",
        "allergies",
        "medications",
        "special_needs",
        "how_heard",
        "additional_info",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("schedule", mode="before")
    @classmethod
    def default_schedule(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return Schedule.FULLTIME
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("phone", "alternate_phone", "emergency_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("zip_code")
    @classmethod
    def validate_zip_code(cls, v: str) -> str:
        if not ZIP_CODE_PATTERN.match(v):
            raise ValueError("Invalid ZIP code format")
        return v


SubmissionPayload = Annotated[
    Union[ContactPayload, EnrollmentPayload], Field(discriminator="kind")
]


class SubmissionOutcome(str, Enum):
    """Terminal state of one pass through the submission pipeline."""

    SUCCEEDED = "succeeded"
    REJECTED_VALIDATION = "rejected_validation"
    REJECTED_RATE_LIMITED = "rejected_rate_limited"
    FAILED_PERSIST = "failed_persist"
    FAILED_UNEXPECTED = "failed_unexpected"


class SubmissionResult(CamelModel):
    """Response body for contact and enrollment submissions."""

    success: bool
    submission_id: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    message: str
    errors: Optional[Dict[str, List[str]]] = None
    next_steps: List[str] = Field(default_factory=list)
    remaining_attempts: Optional[int] = None
    reset_at: Optional[datetime] = None
    outcome: SubmissionOutcome = Field(exclude=True)


class RateLimitDecision(CamelModel):
    allowed: bool
    limit: int
    remaining: int
    reset_at: Optional[datetime] = None


class NotificationOutcome(CamelModel):
    success: bool
    error: Optional[str] = None


class StoredSubmission(CamelModel):
    id: str
    status: SubmissionStatus
    created: bool = True


class WelcomeEmailRequest(CamelModel):
    """Staff request to send first-day details to a new family.

    Required fields are checked by the notification service so a missing
    field is reported by its form name.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    parent_name: Optional[str] = Field(default=None, max_length=100)
    child_name: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[str] = Field(default=None, max_length=40)
    recipient_email: Optional[str] = Field(default=None, max_length=255)
    classroom: Optional[str] = Field(default=None, max_length=100)
    teacher: Optional[str] = Field(default=None, max_length=100)
    locale: Optional[str] = Field(default=None, max_length=5)


class WelcomeEmailResponse(CamelModel):
    success: bool
    message: str
    sent_to: str
    start_date: date


# Enrollment availability


class AvailabilityResponse(CamelModel):
    program: Program
    available: bool
    spots_remaining: int
    waitlist_length: int


# Parent portal documents


class DocumentResponse(CamelModel):
    id: str = Field(validation_alias="public_id")
    parent_email: str
    file_name: str
    content_type: str
    size_bytes: int
    category: DocumentCategory
    child_name: Optional[str] = None
    notes: Optional[str] = None
    expires_at: Optional[date] = None
    status: DocumentStatus
    uploaded_at: datetime


class DocumentUploadResponse(CamelModel):
    success: bool
    documents: List[DocumentResponse]
    message: str


class DocumentListResponse(CamelModel):
    documents: List[DocumentResponse]
    total: int


class DocumentStatusUpdate(CamelModel):
    status: DocumentStatus


# Referrals


class ReferralCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    referrer_name: str = Field(..., min_length=2, max_length=100)
    referrer_email: EmailStr
    referrer_phone: Optional[str] = Field(default=None, max_length=30)
    referrer_type: ReferrerType = ReferrerType.CURRENT_PARENT
    referred_family_name: str = Field(..., min_length=2, max_length=100)
    referred_parent_name: str = Field(..., min_length=2, max_length=100)
    referred_email: EmailStr
    referred_phone: Optional[str] = Field(default=None, max_length=30)
    referred_children_count: int = Field(default=1, ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("referrer_phone", "referred_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v or None)


class ReferralResponse(CamelModel):
    id: int
    referral_code: str
    referrer_name: str
    referrer_email: str
    referrer_type: ReferrerType
    referred_family_name: str
    referred_parent_name: str
    referred_email: str
    referred_children_count: int
    status: ReferralStatus
    notes: Optional[str] = None
    created_at: datetime
    expires_at: datetime


class ReferralMetrics(CamelModel):
    total: int
    pending: int
    active: int
    enrolled: int
    conversion_rate: float


class ReferralListResponse(CamelModel):
    referrals: List[ReferralResponse]
    total: int
    metrics: ReferralMetrics


class ReferralStatusUpdate(CamelModel):
    status: ReferralStatus
    notes: Optional[str] = Field(default=None, max_length=2000)


# Resource library


class ResourceCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=3, max_length=200)
    slug: Optional[str] = Field(default=None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str = Field(..., min_length=10, max_length=1000)
    content: Optional[str] = None
    resource_type: ResourceType
    category: str = Field(..., min_length=2, max_length=50)
    external_url: Optional[str] = Field(default=None, max_length=500)
    file_url: Optional[str] = Field(default=None, max_length=500)
    tags: List[str] = Field(default_factory=list, max_length=20)
    author: Optional[str] = Field(default=None, max_length=100)
    reading_time: Optional[int] = Field(default=None, ge=1, le=600)
    is_featured: bool = False


class ResourceResponse(CamelModel):
    id: int
    slug: str
    title: str
    description: str
    content: Optional[str] = None
    resource_type: ResourceType
    category: str
    external_url: Optional[str] = None
    file_url: Optional[str] = None
    tags: List[str]
    author: Optional[str] = None
    reading_time: Optional[int] = None
    is_featured: bool
    view_count: int
    created_at: datetime
    published_at: Optional[datetime] = None


class ResourceListResponse(CamelModel):
    resources: List[ResourceResponse]
    total: int


# Weather widget


class WeatherCurrent(BaseModel):
    temp: int
    feels_like: int
    temp_min: int
    temp_max: int
    humidity: int
    description: str
    icon: str
    main: str
    wind_speed: int
    pressure: Optional[int] = None
    wind_deg: Optional[int] = None
    clouds: Optional[int] = None
    visibility: Optional[int] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class WeatherLocation(BaseModel):
    name: str
    country: str
    lat: Optional[float] = None
    lon: Optional[float] = None


class WeatherForecastItem(BaseModel):
    dt: int
    temp: int
    description: str
    icon: str
    pop: int


class WeatherResponse(BaseModel):
    current: WeatherCurrent
    location: WeatherLocation
    forecast: List[WeatherForecastItem]
    timestamp: datetime
    cached: bool = False
    error: bool = False
    message: Optional[str] = None


# Localized page context


class LocaleInfo(CamelModel):
    code: str
    name: str
    native_name: str
    dir: str
    date_format: str


class PageContextResponse(CamelModel):
    page: str
    locale: LocaleInfo
    locale_source: str
    canonical_url: str
    alternates: Dict[str, str]

