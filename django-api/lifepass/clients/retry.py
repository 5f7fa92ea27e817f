"""Retry policy for calls to external authorities."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retries with exponential backoff.

    Attempt ``n`` (1-based) that fails waits
    ``min(backoff_base * backoff_factor ** (n - 1), max_backoff)`` seconds
    before attempt ``n + 1``. No wait follows the last attempt.
    """

    max_attempts: int = 3
    backoff_base: float = 0.2
    backoff_factor: float = 2.0
    max_backoff: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_base < 0 or self.max_backoff < 0:
            raise ValueError("backoff values cannot be negative")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be at least 1")

    @classmethod
    def from_settings(cls, config: dict) -> "RetryPolicy":
        return cls(
            max_attempts=config.get("MAX_ATTEMPTS", cls.max_attempts),
            backoff_base=config.get("BACKOFF_BASE", cls.backoff_base),
            backoff_factor=config.get("BACKOFF_FACTOR", cls.backoff_factor),
            max_backoff=config.get("MAX_BACKOFF", cls.max_backoff),
        )

    def delay_for(self, attempt: int) -> float:
        return min(self.backoff_base * self.backoff_factor ** (attempt - 1), self.max_backoff)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        retry_on: type[BaseException] | tuple[type[BaseException], ...],
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> T:
        """Await ``operation`` until it succeeds or attempts run out.

        Only exceptions matching ``retry_on`` are retried; the last one is
        re-raised once ``max_attempts`` is reached.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except retry_on as exc:
                if attempt == self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s), retrying in %.2fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await sleep(delay)
        raise AssertionError("unreachable")
