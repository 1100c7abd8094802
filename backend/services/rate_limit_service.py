"""Database-backed rate limiting for form submissions.

State lives in `rate_limit_records` so every worker process sees the same
counts. Each identifier has a counting window; exceeding the allowance
blocks it for a fixed period, during which attempts are rejected without
being counted.

Limiter failures never block a parent: an empty identifier or a datastore
error is logged and treated as allowed.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from helpers.time_utils import ensure_utc, utc_now
from models.config import Settings
from models.schemas import RateLimitDecision
from repositories.db_models import RateLimitRecord
from repositories.rate_limit_repository import RateLimitRepository


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int = 5
    window: timedelta = timedelta(minutes=60)
    block: timedelta = timedelta(minutes=120)

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "RateLimitPolicy":
        return cls(
            max_attempts=app_settings.FORM_RATE_LIMIT_MAX_ATTEMPTS,
            window=timedelta(minutes=app_settings.FORM_RATE_LIMIT_WINDOW_MINUTES),
            block=timedelta(minutes=app_settings.FORM_RATE_LIMIT_BLOCK_MINUTES),
        )


def build_identifier(kind: str, ip_address: str | None) -> str:
    """Rate limit key for a form kind and client IP ("" when the IP is unknown)."""
    if not ip_address:
        return ""
    return f"{kind}:{ip_address}"


class RateLimitService:
    """Sliding-window attempt counter keyed by identifier."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.repo = RateLimitRepository(db)
        self._clock = clock

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """
        Record an attempt for `identifier` and decide whether it may proceed.

        Args:
            identifier: Rate limit key, e.g. "contact:203.0.113.7".
            policy: Allowance, window and block durations.

        Returns:
            RateLimitDecision with remaining attempts and reset time.
        """
        if not identifier:
            logger.warning("Rate limit check without identifier; allowing request")
            return RateLimitDecision(
                allowed=True, limit=policy.max_attempts, remaining=policy.max_attempts
            )

        try:
            return self._check(identifier, policy)
        except IntegrityError:
            # Another request created the record first; count against it
            self.db.rollback()
            try:
                return self._check(identifier, policy)
            except SQLAlchemyError as e:
                return self._fail_open(identifier, policy, e)
        except SQLAlchemyError as e:
            return self._fail_open(identifier, policy, e)

    def _check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        now = self._clock()
        record = self.repo.get_by_identifier(identifier)

        if record is None:
            record = RateLimitRecord(identifier=identifier)
            return self._start_window(record, now, policy)

        if record.blocked_until is not None:
            blocked_until = ensure_utc(record.blocked_until)
            if blocked_until > now:
                logger.info(
                    f"Rate limit: {identifier} blocked until {blocked_until.isoformat()}"
                )
                return RateLimitDecision(
                    allowed=False,
                    limit=policy.max_attempts,
                    remaining=0,
                    reset_at=blocked_until,
                )
            return self._start_window(record, now, policy)

        window_start = ensure_utc(record.window_start)
        if now - window_start >= policy.window:
            return self._start_window(record, now, policy)

        record.attempt_count += 1
        if record.attempt_count > policy.max_attempts:
            blocked_until = now + policy.block
            record.blocked_until = blocked_until
            self.repo.save(record)
            logger.warning(
                f"Rate limit exceeded for {identifier}: "
                f"{record.attempt_count} attempts, blocked until {blocked_until.isoformat()}"
            )
            return RateLimitDecision(
                allowed=False,
                limit=policy.max_attempts,
                remaining=0,
                reset_at=blocked_until,
            )

        self.repo.save(record)
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_attempts,
            remaining=policy.max_attempts - record.attempt_count,
            reset_at=window_start + policy.window,
        )

    def _start_window(
        self, record: RateLimitRecord, now: datetime, policy: RateLimitPolicy
    ) -> RateLimitDecision:
        record.window_start = now
        record.attempt_count = 1
        record.blocked_until = None
        self.repo.save(record)
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_attempts,
            remaining=policy.max_attempts - 1,
            reset_at=now + policy.window,
        )

    def _fail_open(
        self, identifier: str, policy: RateLimitPolicy, error: Exception
    ) -> RateLimitDecision:
        self.db.rollback()
        logger.error(f"Rate limit check failed for {identifier}; allowing request: {error!r}")
        return RateLimitDecision(
            allowed=True, limit=policy.max_attempts, remaining=policy.max_attempts
        )
