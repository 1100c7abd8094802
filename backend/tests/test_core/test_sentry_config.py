"""Tests for Sentry SDK configuration with privacy-compliant settings."""

import os
from typing import Any
from unittest.mock import patch

import pytest

from core.sentry_config import (
    FILTERED,
    _before_send,
    _scrub_form_data,
    _traces_sampler,
    init_sentry,
)


class TestBeforeSendPIIScrubbing:
    """Tests for PII scrubbing in _before_send."""

    def test_scrubs_email_from_user(self) -> None:
        """User email should be removed from events."""
        event: dict[str, Any] = {
            "user": {
                "id": "123",
                "email": "user@example.com",
                "username": "testuser",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert "email" not in result.get("user", {})

    def test_scrubs_username_from_user(self) -> None:
        """Username should be removed from events."""
        event: dict[str, Any] = {
            "user": {
                "id": "123",
                "username": "testuser",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert "username" not in result.get("user", {})

    def test_anonymizes_ip_address(self) -> None:
        """IP address should be anonymized."""
        event: dict[str, Any] = {
            "user": {
                "id": "123",
                "ip_address": "192.168.1.100",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"]["ip_address"] == "{{auto}}"  # type: ignore[typeddict-item]

    def test_preserves_user_id(self) -> None:
        """User ID should be preserved for traceability."""
        event: dict[str, Any] = {
            "user": {
                "id": "123",
                "email": "user@example.com",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["user"]["id"] == "123"  # type: ignore[typeddict-item]

    def test_removes_cookies_from_request(self) -> None:
        """Cookies should be removed from request data."""
        event: dict[str, Any] = {
            "request": {
                "url": "/api/test",
                "cookies": {"session": "secret_session_value"},
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert "cookies" not in result.get("request", {})

    def test_filters_authorization_header(self) -> None:
        """Authorization header should be filtered."""
        event: dict[str, Any] = {
            "request": {
                "url": "/api/test",
                "headers": {
                    "Authorization": "Bearer secret_token_123",
                    "Content-Type": "application/json",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["request"]["headers"]["Authorization"] == "[Filtered]"  # type: ignore[typeddict-item, index]
        # Other headers should be preserved
        assert result["request"]["headers"]["Content-Type"] == "application/json"  # type: ignore[typeddict-item, index]

    def test_handles_event_without_user(self) -> None:
        """Should handle events without user data gracefully."""
        event: dict[str, Any] = {"message": "Test error"}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        assert result["message"] == "Test error"  # type: ignore[typeddict-item]

    def test_handles_event_without_request(self) -> None:
        """Should handle events without request data gracefully."""
        event: dict[str, Any] = {"message": "Test error", "user": {"id": "123"}}
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None

    def test_scrubs_form_fields_in_request_body(self) -> None:
        """Parent and child details in form bodies should be filtered."""
        event: dict[str, Any] = {
            "request": {
                "url": "/api/enrollment",
                "data": {
                    "parentName": "Maria Lopez",
                    "childBirthDate": "2023-04-01",
                    "program": "toddler",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result is not None
        data = result["request"]["data"]  # type: ignore[typeddict-item, index]
        assert data["parentName"] == FILTERED
        assert data["childBirthDate"] == FILTERED
        assert data["program"] == "toddler"


class TestScrubFormData:
    """Tests for _scrub_form_data."""

    def test_scrubs_nested_structures(self) -> None:
        """Sensitive keys are filtered at any depth."""
        data = {"items": [{"email": "a@b.com", "category": "medical"}]}
        assert _scrub_form_data(data) == {
            "items": [{"email": FILTERED, "category": "medical"}]
        }

    def test_leaves_non_dict_values(self) -> None:
        """Raw strings (unparsed bodies) pass through unchanged."""
        assert _scrub_form_data("raw body") == "raw body"


class TestTracesSampler:
    """Tests for dynamic trace sampling."""

    def test_never_samples_health_checks(self) -> None:
        """Health check endpoints should never be sampled."""
        context: dict[str, Any] = {"asgi_scope": {"path": "/health"}}
        assert _traces_sampler(context) == 0.0

        context = {"asgi_scope": {"path": "/api/health"}}
        assert _traces_sampler(context) == 0.0

    @pytest.mark.parametrize("path", ["/api/contact", "/api/enrollment"])
    def test_higher_sampling_for_form_submissions(self, path: str) -> None:
        """Form endpoints should have 50% sampling."""
        context: dict[str, Any] = {"asgi_scope": {"path": path}}
        assert _traces_sampler(context) == 0.5

    def test_availability_is_sampled_like_forms(self) -> None:
        """Enrollment sub-routes share the enrollment rate."""
        context: dict[str, Any] = {
            "asgi_scope": {"path": "/api/enrollment/availability"}
        }
        assert _traces_sampler(context) == 0.5

    def test_default_sampling_rate(self) -> None:
        """Default sampling rate should be 10%."""
        context: dict[str, Any] = {"asgi_scope": {"path": "/en/about"}}
        assert _traces_sampler(context) == 0.1

    def test_respects_parent_sampling(self) -> None:
        """Should always sample if parent was sampled."""
        context: dict[str, Any] = {
            "parent_sampled": True,
            "asgi_scope": {"path": "/api/weather"},
        }
        assert _traces_sampler(context) == 1.0

    def test_handles_missing_asgi_scope(self) -> None:
        """Should handle missing ASGI scope gracefully."""
        context: dict[str, Any] = {}
        # Default rate when path can't be determined
        assert _traces_sampler(context) == 0.1


class TestInitSentry:
    """Tests for Sentry initialization."""

    def test_init_sentry_without_dsn_does_nothing(self) -> None:
        """Sentry should not initialize without DSN."""
        with patch.dict(os.environ, {}, clear=True):
            # Remove any existing SENTRY_DSN
            os.environ.pop("SENTRY_DSN", None)
            # Should not raise any errors
            init_sentry()

    def test_init_sentry_with_dsn_initializes(self) -> None:
        """Sentry should initialize with valid DSN."""
        test_dsn = "https://test@o0.ingest.sentry.io/0"
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, {"SENTRY_DSN": test_dsn}):
                init_sentry()
                mock_init.assert_called_once()

    def test_init_sentry_uses_environment_variables(self) -> None:
        """Sentry should use environment variables for configuration."""
        env_vars = {
            "SENTRY_DSN": "https://test@o0.ingest.sentry.io/0",
            "ENVIRONMENT": "production",
            "SENTRY_RELEASE": "1.2.3",
        }
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, env_vars):
                init_sentry()
                call_kwargs = mock_init.call_args.kwargs
                assert call_kwargs["dsn"] == env_vars["SENTRY_DSN"]
                assert call_kwargs["environment"] == "production"
                assert call_kwargs["release"] == "1.2.3"

    def test_init_sentry_defaults(self) -> None:
        """Sentry should use defaults when env vars not set."""
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(
                os.environ, {"SENTRY_DSN": "https://test@o0.ingest.sentry.io/0"}
            ):
                # Clear optional vars
                os.environ.pop("ENVIRONMENT", None)
                os.environ.pop("SENTRY_RELEASE", None)
                init_sentry()
                call_kwargs = mock_init.call_args.kwargs
                assert call_kwargs["environment"] == "development"
                assert call_kwargs["release"] == "unknown"
