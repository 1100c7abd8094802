import os
import sys
from typing import Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development picks up `backend/.env` automatically. Under pytest or
    in CI the environment is authoritative so tests stay reproducible.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )
    LOG_DIR: str = Field(
        default="",
        description="Directory for the rotating file log (empty disables it)",
    )

    DATABASE_URL: str = "sqlite:///./data/greatbeginnings.db"
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=10,
        description="Seconds to wait for a connection before the store reports a transient failure",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )
    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Business identity used in emails and page context
    BUSINESS_NAME: str = Field(
        default="Great Beginnings Day Care",
        description="Business name shown in emails",
    )
    BUSINESS_PHONE: str = Field(
        default="(630) 894-3440",
        description="Front desk phone number shown in emails",
    )
    SITE_URL: str = Field(
        default="https://greatbeginningsdaycare.com",
        description="Public site URL used for alternate links",
    )

    # Localization
    SUPPORTED_LOCALES: List[str] = Field(
        default=["en", "es", "pl", "uk"],
        description="Locale codes served by the site",
    )
    DEFAULT_LOCALE: str = Field(
        default="en",
        description="Locale used when nothing else matches",
    )
    LOCALE_COOKIE_NAME: str = Field(default="locale")
    LOCALE_COOKIE_MAX_AGE: int = Field(
        default=60 * 60 * 24 * 365,
        description="Locale cookie lifetime in seconds (one year)",
    )

    # Form submission rate limiting (per form kind and client IP)
    FORM_RATE_LIMIT_MAX_ATTEMPTS: int = Field(
        default=5,
        description="Submissions allowed per window before blocking",
    )
    FORM_RATE_LIMIT_WINDOW_MINUTES: int = Field(
        default=60,
        description="Length of the counting window",
    )
    FORM_RATE_LIMIT_BLOCK_MINUTES: int = Field(
        default=120,
        description="How long an identifier stays blocked after exceeding the limit",
    )

    # Persist retry policy
    PERSIST_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Total attempts to store a submission on transient failures",
    )
    PERSIST_RETRY_DELAY_SECONDS: float = Field(
        default=1.0,
        description="Fixed delay between store attempts",
    )

    # Enrollment capacity per program (pending enrollments before waitlisting)
    PROGRAM_CAPACITY: Dict[str, int] = Field(
        default={
            "infant": 8,
            "toddler": 12,
            "preschool": 20,
            "prek": 20,
            "schoolage": 24,
        },
        description="Open spots per program (JSON object in env var)",
    )

    # Email Provider Settings
    EMAIL_PROVIDER: str = Field(
        default="console",
        description="Email provider: 'smtp', 'resend', 'console'",
    )
    EMAIL_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for outbound email calls",
    )
    SMTP_HOST: str = Field(default="localhost", description="SMTP server hostname")
    SMTP_PORT: int = Field(default=587, description="SMTP server port")
    SMTP_USER: str = Field(default="", description="SMTP username")
    SMTP_PASSWORD: str = Field(default="", description="SMTP password")
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Use STARTTLS for SMTP connection (port 587)",
    )
    SMTP_USE_SSL: bool = Field(
        default=False,
        description="Use implicit SSL for SMTP connection (port 465)",
    )
    EMAIL_FROM_ADDRESS: str = Field(
        default="noreply@greatbeginningsdaycare.com",
        description="From email address",
    )
    EMAIL_FROM_NAME: str = Field(
        default="Great Beginnings Day Care",
        description="From display name",
    )
    RESEND_API_KEY: str = Field(default="", description="Resend API key")
    RESEND_API_URL: str = Field(default="https://api.resend.com/emails")
    STAFF_EMAIL: str = Field(
        default="info@greatbeginningsdaycare.com",
        description="Inbox that receives staff notifications",
    )

    # Weather widget
    OPENWEATHER_API_KEY: str = Field(default="", description="OpenWeatherMap API key")
    OPENWEATHER_BASE_URL: str = Field(
        default="https://api.openweathermap.org/data/2.5"
    )
    WEATHER_CACHE_TTL_SECONDS: int = Field(
        default=600,
        description="How long a weather lookup is served from cache",
    )
    WEATHER_TIMEOUT_SECONDS: float = Field(default=5.0)
    WEATHER_DEFAULT_LAT: float = Field(default=41.9848)
    WEATHER_DEFAULT_LON: float = Field(default=-88.0776)
    WEATHER_DEFAULT_CITY: str = Field(default="Roselle")

    # Parent portal uploads
    UPLOAD_DIR: str = Field(
        default="./data/uploads",
        description="Directory where portal documents are written",
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum size per uploaded document (10MB)",
    )

    # Feature flags (checked once when routers are registered)
    FEATURE_RESOURCE_LIBRARY: bool = Field(default=False)
    FEATURE_REFERRAL_TRACKER: bool = Field(default=False)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator("CORS_ORIGINS", "SUPPORTED_LOCALES", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | List[str]) -> List[str]:
        """Parse list settings from a comma-separated string."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


settings = Settings()
