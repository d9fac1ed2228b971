"""
SCOUT — Retry Policy
Exponential backoff shared by every network caller that knows the cost of
retrying (the Fetcher itself never retries).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from .errors import FetchTimeout, NetworkError, RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry an async callable up to `max_attempts` times.

    Delay before attempt n+1 is `base_delay * factor**(n-1)`, capped at
    `max_delay`. A RateLimited error carrying `retry_after` waits at least
    that long.
    """
    max_attempts: int = 3
    base_delay: float = 5.0
    factor: float = 2.0
    max_delay: float = 60.0
    retry_on: Tuple[Type[BaseException], ...] = field(
        default=(NetworkError, FetchTimeout, RateLimited)
    )

    def delay_for(self, attempt: int) -> float:
        """Backoff before the retry that follows `attempt` (1-based)."""
        return min(self.max_delay, self.base_delay * (self.factor ** (attempt - 1)))

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on)

    async def run(self, fn: Callable[[], Awaitable[T]], label: str = "call") -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await fn()
            except Exception as e:
                if not self.is_retryable(e) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                retry_after = getattr(e, "retry_after", None)
                if retry_after:
                    delay = max(delay, float(retry_after))
                logger.warning(
                    f"  🔁 {label} attempt {attempt}/{self.max_attempts} failed ({e}), "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
