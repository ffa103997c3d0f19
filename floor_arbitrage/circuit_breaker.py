"""
Circuit breaker for a protected call path.

CLOSED counts consecutive failures and opens once max_failures is reached.
OPEN fails fast with CircuitOpenError, without invoking the operation,
until reset_timeout seconds have passed since the last failure. The first
call after that runs as a single HALF_OPEN probe: success closes the
circuit, failure reopens it and restarts the cooldown.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .constants import (
    DEFAULT_MAX_FAILURES,
    DEFAULT_RESET_TIMEOUT_SECONDS,
    CircuitState,
)
from .exceptions import CircuitOpenError
from .interfaces import SystemTimeProvider, TimeProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorPredicate = Callable[[BaseException], bool]
StateChangeCallback = Callable[[str, CircuitState, CircuitState], None]


def _always(error: BaseException) -> bool:
    return True


def _never(error: BaseException) -> bool:
    return False


class CircuitBreaker:
    """
    Async circuit breaker.

    Args:
        name: Label used in logs, metrics and CircuitOpenError
        max_failures: Consecutive counted failures that open the circuit
        reset_timeout: Seconds to stay open before allowing a probe
        is_failure: Decides whether an error counts against the circuit
        trips_immediately: Errors for which the circuit opens at once
        on_state_change: Called with (name, old_state, new_state)
    """

    def __init__(
        self,
        name: str = "default",
        max_failures: int = DEFAULT_MAX_FAILURES,
        reset_timeout: float = DEFAULT_RESET_TIMEOUT_SECONDS,
        is_failure: Optional[ErrorPredicate] = None,
        trips_immediately: Optional[ErrorPredicate] = None,
        on_state_change: Optional[StateChangeCallback] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        if max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        self.name = name
        self.max_failures = max_failures
        self.reset_timeout = reset_timeout
        self.is_failure = is_failure or _always
        self.trips_immediately = trips_immediately or _never
        self.on_state_change = on_state_change
        self._time = time_provider or SystemTimeProvider()

        self._state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_at: Optional[float] = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"Circuit '{self.name}' {old_state.value} -> {new_state.value}")
        if self.on_state_change:
            self.on_state_change(self.name, old_state, new_state)

    def _remaining_cooldown(self, now: float) -> float:
        if self.last_failure_at is None:
            return 0.0
        return max(0.0, self.reset_timeout - (now - self.last_failure_at))

    def _admit(self) -> bool:
        """Admit the call or raise CircuitOpenError. Returns True for a probe."""
        if self._state == CircuitState.CLOSED:
            return False

        now = self._time.current_timestamp()
        if self._state == CircuitState.OPEN:
            remaining = self._remaining_cooldown(now)
            if remaining > 0:
                raise CircuitOpenError(self.name, remaining)
            self._transition(CircuitState.HALF_OPEN)

        # HALF_OPEN: exactly one probe at a time
        if self._probe_in_flight:
            raise CircuitOpenError(self.name, 0.0)
        self._probe_in_flight = True
        return True

    def _record_success(self) -> None:
        self.failure_count = 0
        self._transition(CircuitState.CLOSED)

    def _record_failure(self, error: BaseException, probe: bool) -> None:
        if not self.is_failure(error):
            # Downstream answered, just not with something we count
            if probe:
                self._record_success()
            return

        self.failure_count += 1
        self.last_failure_at = self._time.current_timestamp()
        if probe or self.trips_immediately(error) or self.failure_count >= self.max_failures:
            self._transition(CircuitState.OPEN)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation under the breaker, failing fast while open."""
        probe = self._admit()
        try:
            result = await operation()
        except Exception as e:
            self._record_failure(e, probe)
            raise
        finally:
            if probe:
                self._probe_in_flight = False
        self._record_success()
        return result

    def reset(self) -> None:
        """Force the circuit closed and clear its counters."""
        self.failure_count = 0
        self.last_failure_at = None
        self._probe_in_flight = False
        self._transition(CircuitState.CLOSED)

    def get_status(self) -> dict:
        now = self._time.current_timestamp()
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self.failure_count,
            "last_failure_at": self.last_failure_at,
            "retry_in_seconds": (
                self._remaining_cooldown(now) if self._state == CircuitState.OPEN else 0.0
            ),
        }
