"""
Retry policy with exponential backoff and jitter.

Wraps an async operation and re-invokes it on retryable failures only.
Anything outside the retryable set propagates on the first attempt.
"""

import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
)
from .exceptions import RateLimitError
from .interfaces import (
    RandomProvider,
    SystemRandomProvider,
    SystemTimeProvider,
    TimeProvider,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[str, int, BaseException, float], None]


class RetryPolicy:
    """
    Exponential backoff retry policy.

    max_retries is the total number of attempts, so an operation that keeps
    failing with a retryable error is invoked exactly max_retries times.
    Delays are in milliseconds: base_delay * 2**attempt, multiplied by a
    random factor in [1, 2) when jitter is on and capped at max_delay. A
    RateLimitError that carries a server hint (retry_after_ms) replaces the
    computed delay; without a hint the error backs off like any other.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_MS,
        jitter: bool = True,
        retryable: Tuple[Type[BaseException], ...] = (RateLimitError,),
        max_delay: float = DEFAULT_MAX_DELAY_MS,
        time_provider: Optional[TimeProvider] = None,
        random_provider: Optional[RandomProvider] = None,
        on_retry: Optional[RetryCallback] = None,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.jitter = jitter
        self.retryable = retryable
        self.max_delay = max_delay
        self.on_retry = on_retry
        self._time = time_provider or SystemTimeProvider()
        self._random = random_provider or SystemRandomProvider()

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retryable)

    def compute_delay(self, attempt: int, error: Optional[BaseException] = None) -> float:
        """Delay in milliseconds before the attempt following `attempt` (0-based)."""
        if isinstance(error, RateLimitError) and error.retry_after_ms:
            return float(error.retry_after_ms)

        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 1.0 + self._random.random()
        return min(delay, self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str = "operation",
    ) -> T:
        """Invoke operation until it succeeds, fails permanently, or attempts run out."""
        attempts = max(1, self.max_retries)

        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                if attempt >= attempts - 1:
                    logger.error(f"All {attempts} attempts failed for {name}: {e}")
                    raise

                delay_ms = self.compute_delay(attempt, e)
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} failed for {name}, "
                    f"retrying in {delay_ms:.0f}ms: {e}"
                )
                if self.on_retry:
                    self.on_retry(name, attempt + 1, e, delay_ms)
                await self._time.sleep(delay_ms / 1000.0)

        # range(attempts) always returns or raises above
        raise AssertionError("unreachable")
