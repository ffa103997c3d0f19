"""
Sliding-window rate limiter for outbound API calls.

Each named bucket admits at most requests_per_window units of cost within
any rolling window_seconds interval.
"""

import asyncio
import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional

from .constants import DEFAULT_RATE_WINDOW_SECONDS, DEFAULT_REQUESTS_PER_WINDOW
from .exceptions import RateLimitError
from .interfaces import SystemTimeProvider, TimeProvider

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Simple in-memory rate limiter using sliding window.

    Safe for concurrent coroutines on one event loop. A distributed
    deployment would need a shared store instead.
    """

    def __init__(
        self,
        requests_per_window: int = DEFAULT_REQUESTS_PER_WINDOW,
        window_seconds: float = DEFAULT_RATE_WINDOW_SECONDS,
        time_provider: Optional[TimeProvider] = None,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_window: Maximum cost admitted per bucket per window
            window_seconds: Length of the rolling window
            time_provider: Clock used for window bookkeeping
        """
        if requests_per_window <= 0:
            raise ValueError("requests_per_window must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self._time = time_provider or SystemTimeProvider()
        # {bucket: [timestamp, ...]}, one timestamp per unit of cost
        self.request_history: Dict[str, List[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def _prune(self, bucket: str, now: float) -> List[float]:
        cutoff = now - self.window_seconds
        history = [ts for ts in self.request_history[bucket] if ts > cutoff]
        self.request_history[bucket] = history
        return history

    async def consume(self, bucket: str, cost: int = 1) -> None:
        """
        Take cost units from bucket or raise RateLimitError.

        The error's retry_after_ms says when enough of the window will have
        drained for the same cost to be admitted.
        """
        if cost <= 0:
            raise ValueError("cost must be positive")
        if cost > self.requests_per_window:
            raise RateLimitError(
                retry_after_ms=int(self.window_seconds * 1000),
                message=f"Cost {cost} exceeds limiter capacity {self.requests_per_window}",
                details={"bucket": bucket},
            )

        async with self._lock:
            now = self._time.current_timestamp()
            history = self._prune(bucket, now)

            if len(history) + cost > self.requests_per_window:
                # The slot we need frees up when this timestamp leaves the window
                blocking = sorted(history)[len(history) + cost - self.requests_per_window - 1]
                retry_after = blocking + self.window_seconds - now
                retry_after_ms = max(1, math.ceil(retry_after * 1000))
                logger.warning(
                    f"Local rate limit reached for '{bucket}', retry in {retry_after_ms}ms"
                )
                raise RateLimitError(
                    retry_after_ms=retry_after_ms,
                    details={"bucket": bucket, "source": "local"},
                )

            history.extend([now] * cost)

    async def remaining(self, bucket: str) -> int:
        async with self._lock:
            history = self._prune(bucket, self._time.current_timestamp())
            return max(0, self.requests_per_window - len(history))

    async def cleanup_old_entries(self, max_age_seconds: float = 300) -> int:
        """
        Drop buckets with no requests in max_age_seconds.

        Returns:
            Number of buckets removed
        """
        async with self._lock:
            cutoff = self._time.current_timestamp() - max_age_seconds
            stale = [
                bucket
                for bucket, timestamps in self.request_history.items()
                if not timestamps or max(timestamps) < cutoff
            ]
            for bucket in stale:
                del self.request_history[bucket]
            return len(stale)
