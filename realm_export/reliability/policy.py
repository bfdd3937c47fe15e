"""
Retry Policy — Bounded retries with exponential backoff, and token lifetime.

The default policy performs no retries and never expires the admin token,
so every failure surfaces immediately and one token serves the whole run.

## Usage

    from realm_export.reliability.policy import RetryPolicy

    policy = RetryPolicy(max_retries=2, backoff_seconds=1.0)
    data = policy.call(lambda: fetch(realm), description=f"export {realm}")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..errors import RealmExportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and token refresh settings."""

    max_retries: int = 0
    backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_backoff_seconds: float = 60.0
    token_ttl_seconds: Optional[float] = None

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            backoff_seconds=config.retry_backoff_seconds,
            token_ttl_seconds=config.token_ttl_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        delay = self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_backoff_seconds)

    def token_expired(self, acquired_at: float, now: float) -> bool:
        """True if a token acquired at ``acquired_at`` (monotonic) must be replaced."""
        if self.token_ttl_seconds is None:
            return False
        return now - acquired_at >= self.token_ttl_seconds

    def call(
        self,
        operation: Callable[[], T],
        description: str = "operation",
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """
        Run ``operation``, retrying retryable exporter errors.

        Non-retryable errors and the last retryable one propagate unchanged.
        """
        attempt = 0
        while True:
            try:
                return operation()
            except RealmExportError as e:
                if not e.retryable or attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{description} failed ({e.message}), "
                    f"retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                sleep(delay)


NO_RETRY = RetryPolicy()
