"""
Dependency injection interfaces for improved testability and modularity.

Provides lightweight protocols for time, randomness and the host runtime
that supplies credentials. Components receive these explicitly instead of
reaching for module-level state, so tests can drive the clock directly.
"""

import asyncio
import os
import random
import time
from typing import Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol for time-related operations."""

    def current_timestamp(self) -> float:
        """Get current Unix timestamp."""
        ...

    def current_time_ms(self) -> int:
        """Get current time in milliseconds."""
        ...

    async def sleep(self, duration: float) -> None:
        """Suspend the caller for duration seconds."""
        ...


@runtime_checkable
class RandomProvider(Protocol):
    """Protocol for random number generation."""

    def random(self) -> float:
        """Generate random float between 0.0 and 1.0."""
        ...

    def uniform(self, a: float, b: float) -> float:
        """Generate random float between a and b."""
        ...


@runtime_checkable
class AgentRuntime(Protocol):
    """Host runtime that resolves settings such as API credentials."""

    def get_setting(self, key: str) -> Optional[str]:
        ...


class SystemTimeProvider:
    """Production time provider using system time."""

    def current_timestamp(self) -> float:
        return time.time()

    def current_time_ms(self) -> int:
        return int(time.time() * 1000)

    async def sleep(self, duration: float) -> None:
        await asyncio.sleep(duration)


class SystemRandomProvider:
    """Production random provider using system random."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)


class DeterministicTimeProvider:
    """Deterministic time provider for testing; sleeping advances the clock."""

    def __init__(self, start_time: float = 1640995200.0):  # 2022-01-01
        self._current_time = start_time
        self.sleeps = []

    def current_timestamp(self) -> float:
        return self._current_time

    def current_time_ms(self) -> int:
        return int(self._current_time * 1000)

    async def sleep(self, duration: float) -> None:
        """Record the requested delay and advance time instead of waiting."""
        self.sleeps.append(duration)
        self._current_time += duration

    def advance_time(self, seconds: float) -> None:
        """Manually advance time by specified seconds."""
        self._current_time += seconds

    def set_time(self, timestamp: float) -> None:
        self._current_time = timestamp


class EnvironmentRuntime:
    """
    Runtime backed by process environment variables.

    An optional overrides mapping takes precedence, which lets callers
    inject per-agent settings without touching os.environ.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self._overrides = dict(overrides or {})

    def get_setting(self, key: str) -> Optional[str]:
        if key in self._overrides:
            return self._overrides[key]
        value = os.environ.get(key)
        return value or None
