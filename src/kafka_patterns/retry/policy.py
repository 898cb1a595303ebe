"""RetryPolicy — bounded retries with optional exponential backoff."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import RetryOptions


class RetryPolicy:
    """Configurable retry ceiling and delay schedule."""

    def __init__(
        self,
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
        use_exponential_backoff: bool = True,
    ) -> None:
        """Configure retry behavior.

        Args:
            max_retries: Republishes allowed before a message is dead-lettered.
            base_delay: Delay in seconds before the first retry.
            use_exponential_backoff: If True, double the delay on every retry;
                otherwise wait ``base_delay`` each time.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.use_exponential_backoff = use_exponential_backoff

    @classmethod
    def from_options(cls, options: RetryOptions) -> RetryPolicy:
        return cls(
            max_retries=options.max_retries,
            base_delay=options.base_delay,
            use_exponential_backoff=options.use_exponential_backoff,
        )

    def should_retry(self, retry_count: int) -> bool:
        """Return True if a message already retried ``retry_count`` times may retry again."""
        return retry_count < self.max_retries

    def delay_for_retry(self, retry_count: int) -> float:
        """Return delay in seconds before the given 1-based retry.

        Uses exponential backoff: base_delay * 2^(retry_count-1).
        """
        if retry_count < 1:
            return 0.0
        if not self.use_exponential_backoff:
            return float(self.base_delay)
        return float(self.base_delay * (2 ** (retry_count - 1)))

    async def wait_before_retry(self, retry_count: int) -> None:
        """Sleep for the delay of the given retry; a zero delay does not sleep."""
        d = self.delay_for_retry(retry_count)
        if d > 0:
            await _sleep(d)


async def _sleep(seconds: float) -> None:
    """Async sleep (overridable for tests)."""
    await asyncio.sleep(seconds)
