"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["STAFF_EMAIL"] = "staff@test.com"
os.environ["OPENWEATHER_API_KEY"] = ""
os.environ["PERSIST_RETRY_DELAY_SECONDS"] = "0"
os.environ["FEATURE_RESOURCE_LIBRARY"] = "true"
os.environ["FEATURE_REFERRAL_TRACKER"] = "true"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="gb-uploads-")
os.environ.pop("SENTRY_DSN", None)

from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models  # noqa: E402,F401

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with overridden database dependency."""
    from main import app
    from helpers.rate_limiter import limiter

    # Reset rate limiter storage before each test to prevent rate limit errors
    limiter.reset()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def contact_form() -> dict:
    """A valid contact form as the frontend sends it."""
    return {
        "name": "Jane Doe",
        "email": "Jane.Doe@Example.com",
        "phone": "(630) 555-0100",
        "subject": "tour",
        "message": "We would like to schedule a tour next week.",
        "childAge": "toddler",
        "preferredContactMethod": "email",
        "urgency": "normal",
        "consent": True,
    }


@pytest.fixture
def enrollment_form() -> dict:
    """A valid enrollment application for a two year old."""
    today = date.today()
    return {
        "parentName": "Maria Lopez",
        "email": "maria@example.com",
        "phone": "630-555-0142",
        "address": "12 Main St",
        "city": "Roselle",
        "state": "IL",
        "zipCode": "60172",
        "childName": "Sofia Lopez",
        "childBirthDate": (today - timedelta(days=730)).isoformat(),
        "program": "toddler",
        "desiredStartDate": (today + timedelta(days=30)).isoformat(),
        "schedule": "fulltime",
        "emergencyContact": "Ana Lopez",
        "emergencyPhone": "630-555-0199",
        "emergencyRelationship": "Aunt",
        "allergies": "",
    }


@pytest.fixture
def contact_payload(contact_form):
    """The contact form as a validated payload."""
    from models.schemas import ContactPayload

    return ContactPayload.model_validate(contact_form)


@pytest.fixture
def enrollment_payload(enrollment_form):
    """The enrollment form as a validated payload."""
    from models.schemas import EnrollmentPayload

    return EnrollmentPayload.model_validate(enrollment_form)
