"""Tests for the database-backed form rate limiter."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from services.rate_limit_service import (
    RateLimitPolicy,
    RateLimitService,
    build_identifier,
)

START = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
POLICY = RateLimitPolicy(
    max_attempts=5, window=timedelta(minutes=60), block=timedelta(minutes=120)
)


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter_service(db_session, clock: FakeClock) -> RateLimitService:
    return RateLimitService(db_session, clock=clock)


class TestBuildIdentifier:
    """Tests for build_identifier."""

    def test_kind_and_ip(self) -> None:
        """Identifier combines form kind and client IP."""
        assert build_identifier("contact", "203.0.113.7") == "contact:203.0.113.7"

    def test_unknown_ip(self) -> None:
        """No IP gives an empty identifier."""
        assert build_identifier("contact", None) == ""


class TestRateLimitService:
    """Tests for RateLimitService.check."""

    def test_allows_up_to_max_attempts(self, limiter_service: RateLimitService) -> None:
        """The first N attempts are allowed with a decreasing remainder."""
        remaining = [
            limiter_service.check("contact:1.2.3.4", POLICY).remaining for _ in range(5)
        ]

        assert remaining == [4, 3, 2, 1, 0]

    def test_blocks_attempt_over_limit(
        self, limiter_service: RateLimitService, clock: FakeClock
    ) -> None:
        """Attempt N+1 is blocked until now + block duration."""
        for _ in range(5):
            assert limiter_service.check("contact:1.2.3.4", POLICY).allowed

        decision = limiter_service.check("contact:1.2.3.4", POLICY)

        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.reset_at == START + timedelta(minutes=120)

    def test_stays_blocked_during_block(
        self, limiter_service: RateLimitService, clock: FakeClock
    ) -> None:
        """Attempts during the block are rejected and keep the same reset time."""
        for _ in range(6):
            limiter_service.check("contact:1.2.3.4", POLICY)

        clock.advance(minutes=119)
        decision = limiter_service.check("contact:1.2.3.4", POLICY)

        assert not decision.allowed
        assert decision.reset_at == START + timedelta(minutes=120)

    def test_fresh_window_after_block_expires(
        self, limiter_service: RateLimitService, clock: FakeClock
    ) -> None:
        """Once the block has passed the identifier starts over."""
        for _ in range(6):
            limiter_service.check("contact:1.2.3.4", POLICY)

        clock.advance(minutes=121)
        decision = limiter_service.check("contact:1.2.3.4", POLICY)

        assert decision.allowed
        assert decision.remaining == 4

    def test_window_expiry_resets_count(
        self, limiter_service: RateLimitService, clock: FakeClock
    ) -> None:
        """Attempts spread over more than one window are not blocked."""
        for _ in range(5):
            limiter_service.check("contact:1.2.3.4", POLICY)

        clock.advance(minutes=60)
        decision = limiter_service.check("contact:1.2.3.4", POLICY)

        assert decision.allowed
        assert decision.remaining == 4
        assert decision.reset_at == clock.now + timedelta(minutes=60)

    def test_identifiers_are_independent(self, limiter_service: RateLimitService) -> None:
        """Blocking one identifier does not affect another."""
        for _ in range(6):
            limiter_service.check("contact:1.2.3.4", POLICY)

        assert limiter_service.check("contact:5.6.7.8", POLICY).allowed
        assert limiter_service.check("enrollment:1.2.3.4", POLICY).allowed

    def test_empty_identifier_is_allowed(self, limiter_service: RateLimitService) -> None:
        """Without an identifier the check fails open."""
        decision = limiter_service.check("", POLICY)

        assert decision.allowed
        assert decision.remaining == POLICY.max_attempts

    def test_datastore_error_fails_open(self) -> None:
        """A database error is logged and the request is allowed."""
        db = Mock()
        service = RateLimitService(db)
        service.repo = Mock()
        service.repo.get_by_identifier.side_effect = OperationalError(
            "SELECT", {}, Exception("database is locked")
        )

        decision = service.check("contact:1.2.3.4", POLICY)

        assert decision.allowed
        assert decision.remaining == POLICY.max_attempts
        db.rollback.assert_called_once()
