"""
Retry policy for embedding provider calls.

Providers never retry on their own; the engines wrap each call with a
RetryPolicy. Only ProviderError.retryable failures (timeouts, connection
errors, 5xx/429) are retried, with exponential backoff. Everything else
surfaces on the first attempt.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from semantic_search.core.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    With max_retries=2 and backoff_seconds=0.5 a failing call is attempted
    three times, sleeping 0.5s then 1.0s in between.
    """

    max_retries: int = 2
    backoff_seconds: float = 0.5
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delays(self) -> list[float]:
        return [self.backoff_seconds * (2 ** attempt) for attempt in range(self.max_retries)]

    def call(self, fn: Callable[[], T], description: str = "embedding request") -> T:
        """Run fn, retrying transient provider failures."""
        for attempt, delay in enumerate(self.delays(), start=1):
            try:
                return fn()
            except ProviderError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    f"{description} attempt {attempt} failed ({e.message}), "
                    f"retrying in {delay:.2f}s"
                )
                self.sleep(delay)
        return fn()
