"""Tests for dependency injection interfaces."""

import time

import pytest

from floor_arbitrage.interfaces import (
    AgentRuntime,
    DeterministicTimeProvider,
    EnvironmentRuntime,
    RandomProvider,
    SystemRandomProvider,
    SystemTimeProvider,
    TimeProvider,
)


def test_system_time_provider():
    provider = SystemTimeProvider()

    ts1 = provider.current_timestamp()
    time.sleep(0.01)
    ts2 = provider.current_timestamp()
    assert ts2 > ts1

    ms = provider.current_time_ms()
    assert isinstance(ms, int)
    assert ms > 0


@pytest.mark.asyncio
async def test_system_time_provider_sleep():
    provider = SystemTimeProvider()
    start = provider.current_timestamp()
    await provider.sleep(0.01)
    assert provider.current_timestamp() >= start + 0.005


def test_system_random_provider_is_seeded():
    a = SystemRandomProvider(seed=42)
    b = SystemRandomProvider(seed=42)
    assert [a.random() for _ in range(3)] == [b.random() for _ in range(3)]

    value = a.uniform(5.0, 10.0)
    assert 5.0 <= value <= 10.0


def test_deterministic_time_provider():
    provider = DeterministicTimeProvider(start_time=1000.0)
    assert provider.current_timestamp() == 1000.0
    assert provider.current_time_ms() == 1000000

    provider.advance_time(5.5)
    assert provider.current_timestamp() == 1005.5

    provider.set_time(2000.0)
    assert provider.current_timestamp() == 2000.0


@pytest.mark.asyncio
async def test_deterministic_sleep_advances_clock():
    provider = DeterministicTimeProvider(start_time=1000.0)
    await provider.sleep(2.5)
    await provider.sleep(1.0)
    assert provider.sleeps == [2.5, 1.0]
    assert provider.current_timestamp() == 1003.5


def test_environment_runtime(monkeypatch):
    monkeypatch.setenv("RESERVOIR_API_KEY", "env-key")
    assert EnvironmentRuntime().get_setting("RESERVOIR_API_KEY") == "env-key"

    runtime = EnvironmentRuntime({"RESERVOIR_API_KEY": "override"})
    assert runtime.get_setting("RESERVOIR_API_KEY") == "override"

    monkeypatch.setenv("EMPTY_SETTING", "")
    assert EnvironmentRuntime().get_setting("EMPTY_SETTING") is None
    assert EnvironmentRuntime().get_setting("FLOOR_ARBITRAGE_UNSET_SETTING") is None


def test_protocol_conformance():
    assert isinstance(SystemTimeProvider(), TimeProvider)
    assert isinstance(DeterministicTimeProvider(), TimeProvider)
    assert isinstance(SystemRandomProvider(), RandomProvider)
    assert isinstance(EnvironmentRuntime(), AgentRuntime)
