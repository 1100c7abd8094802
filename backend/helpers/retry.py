"""
Bounded retry with a fixed delay.

The policy only decides whether and when to try again; it does not log.
Callers that want to record retries pass an `on_retry` callback.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from models.exceptions import TransientStoreException

T = TypeVar("T")


@dataclass
class RetryOutcome(Generic[T]):
    """
    Result of running an operation under a RetryPolicy.

    Attributes:
        value: Return value of the successful attempt, if any.
        error: Last retryable error when every attempt failed.
        attempts: Number of times the operation was called.
        failures: Errors raised by the failed attempts, in order.
    """

    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 0
    failures: list[Exception] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry an operation on retryable errors, up to `max_attempts` total calls.

    Errors not listed in `retry_on` propagate immediately without a retry.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0
    retry_on: tuple[type[Exception], ...] = (TransientStoreException,)
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

    def is_retryable(self, error: Exception) -> bool:
        return isinstance(error, self.retry_on)

    def run(
        self,
        operation: Callable[[], T],
        on_retry: Callable[[Exception, int], None] | None = None,
    ) -> RetryOutcome[T]:
        """
        Call `operation` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument callable to run.
            on_retry: Called with (error, attempt_number) after each failed
                attempt that will be retried.

        Returns:
            RetryOutcome with either `value` or `error` set.
        """
        outcome: RetryOutcome[T] = RetryOutcome()

        for attempt in range(1, self.max_attempts + 1):
            outcome.attempts = attempt
            try:
                outcome.value = operation()
                return outcome
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                outcome.failures.append(e)
                if attempt == self.max_attempts:
                    outcome.error = e
                    return outcome
                if on_retry is not None:
                    on_retry(e, attempt)
                if self.delay_seconds:
                    self.sleep(self.delay_seconds)

        return outcome
