"""
Ghost Pool Retry Policy

Bounded exponential backoff for transient failures. Only errors marked
retryable (NetworkError and subclasses) are retried; everything else
propagates on first occurrence.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ghostpool.config import RetryConfig
from ghostpool.errors import GhostPoolError, Stage

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RetryPolicy:
    """delay(n) = min(base_delay * 2**(n-1), max_delay) after failed attempt n."""
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 16.0
    sleep: Sleep = asyncio.sleep

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_sec,
            max_delay=config.max_delay_sec,
        )

    def delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        stage: Optional[Stage] = None,
    ) -> T:
        """
        Run `operation` until it succeeds or attempts run out.

        Raises:
            The last retryable error once attempts are exhausted, or the first
            non-retryable error. Both are tagged with `stage` if given.
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except GhostPoolError as exc:
                if stage is not None:
                    exc.at_stage(stage)
                if not exc.retryable or attempt >= self.max_attempts:
                    raise
                wait = self.delay(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}): "
                    f"{exc.message}; retrying in {wait:.1f}s"
                )
                await self.sleep(wait)
                attempt += 1
