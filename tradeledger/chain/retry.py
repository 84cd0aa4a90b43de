"""Retry policy as a pure function of (attempt, failure kind)."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable

from tradeledger.config import Settings
from tradeledger.errors import FailureKind


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


NO_RETRY = RetryDecision(retry=False)


@dataclass(frozen=True)
class RetryPolicy:
    """Decide whether a failed attempt is retried and how long to wait.

    ``attempt`` is 1-based: the number of attempts already made. Rate limits
    wait ``rate_limit_delay`` plus up to ``rate_limit_jitter``; server errors
    and timeouts wait ``server_error_delay``. With ``exponential`` every delay
    doubles per attempt. Terminal failures never retry.
    """

    max_attempts: int = 3
    rate_limit_delay: float = 2.0
    rate_limit_jitter: float = 1.0
    server_error_delay: float = 3.0
    exponential: bool = False

    def decide(
        self,
        attempt: int,
        kind: FailureKind,
        rand: Callable[[], float] = random.random,
    ) -> RetryDecision:
        if kind is FailureKind.TERMINAL or attempt >= self.max_attempts:
            return NO_RETRY

        if kind is FailureKind.RATE_LIMITED:
            delay = self.rate_limit_delay + rand() * self.rate_limit_jitter
        else:
            delay = self.server_error_delay

        if self.exponential:
            delay *= 2 ** (attempt - 1)
        return RetryDecision(retry=True, delay=delay)

    @classmethod
    def for_items(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            rate_limit_delay=settings.rate_limit_delay,
            rate_limit_jitter=settings.rate_limit_jitter,
            server_error_delay=settings.server_error_delay,
        )

    @classmethod
    def for_pages(cls, settings: Settings) -> RetryPolicy:
        """List pages: long budget, exponential backoff, no jitter."""
        return cls(
            max_attempts=settings.page_max_attempts,
            rate_limit_delay=settings.page_retry_delay,
            rate_limit_jitter=0.0,
            server_error_delay=settings.page_retry_delay,
            exponential=True,
        )
