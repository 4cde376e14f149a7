"""Exponential backoff for throttled generative calls."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TypeVar

from ..logging import get_logger
from .runner import LLMRequestError, RateLimitError

T = TypeVar("T")

_RATE_LIMIT_MARKERS = ("rate limit", "ratelimit", "quota", "too many requests")

_logger = get_logger("llm.retry")


def is_rate_limit_error(error: BaseException) -> bool:
    """Return True for throttling errors: explicit class, HTTP 429 or rate-limit wording."""
    if isinstance(error, RateLimitError):
        return True
    if isinstance(error, LLMRequestError) and error.status == 429:
        return True
    text = str(error).lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt cap plus a doubling delay schedule with an upper bound.

    ``max_attempts`` counts every call, including the first one.
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 16.0
    retryable: Callable[[BaseException], bool] = is_rate_limit_error

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based)."""
        delay = self.base_delay * (self.multiplier ** (retry_number - 1))
        return min(delay, self.max_delay)

    def with_overrides(
        self,
        *,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        multiplier: Optional[float] = None,
        max_delay: Optional[float] = None,
    ) -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=max_attempts if max_attempts is not None else self.max_attempts,
            base_delay=base_delay if base_delay is not None else self.base_delay,
            multiplier=multiplier if multiplier is not None else self.multiplier,
            max_delay=max_delay if max_delay is not None else self.max_delay,
            retryable=self.retryable,
        )


@dataclass(frozen=True)
class RetryAttempt:
    attempt: int
    error: str
    delay: float


@dataclass
class RetryTrace:
    """Record of the retries performed for one namespace."""

    attempts: List[RetryAttempt] = field(default_factory=list)

    @property
    def retries(self) -> int:
        return len(self.attempts)

    @property
    def total_delay(self) -> float:
        return sum(item.delay for item in self.attempts)

    def record(self, attempt: int, error: BaseException, delay: float) -> None:
        self.attempts.append(RetryAttempt(attempt=attempt, error=str(error), delay=delay))


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    trace: RetryTrace | None = None,
    label: str = "request",
) -> T:
    """Invoke ``fn`` until it succeeds, a non-retryable error occurs, or attempts run out.

    The last error is re-raised unchanged once the attempt cap is reached.
    """
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as exc:
            if not policy.retryable(exc) or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            if trace is not None:
                trace.record(attempt, exc, delay)
            _logger.warning(
                "Rate limited on %s (attempt %d/%d); retrying in %.1fs",
                label,
                attempt,
                policy.max_attempts,
                delay,
            )
            sleep(delay)
            attempt += 1


__all__ = ["RetryAttempt", "RetryPolicy", "RetryTrace", "call_with_retry", "is_rate_limit_error"]
