"""
Unit tests for Prometheus metrics
"""

import aiohttp.test_utils
import pytest
from prometheus_client import CollectorRegistry, generate_latest

from floor_arbitrage.constants import CircuitState
from floor_arbitrage.metrics import ServiceMetrics


@pytest.fixture
def test_registry():
    """Create a test-specific registry"""
    return CollectorRegistry()


@pytest.fixture
def metrics(test_registry):
    return ServiceMetrics(test_registry)


class TestServiceMetrics:
    """Test ServiceMetrics functionality"""

    def test_initialization(self, metrics):
        assert metrics.registry is not None
        assert hasattr(metrics, "requests_total")
        assert hasattr(metrics, "sweeps_total")
        assert hasattr(metrics, "circuit_state")

    def test_default_registry_is_private(self):
        a = ServiceMetrics()
        b = ServiceMetrics()
        assert a.registry is not b.registry

    def test_request_metrics(self, metrics, test_registry):
        metrics.record_request("/stats/v1", True, 0.2)
        metrics.record_request("/stats/v1", False, 1.5)

        assert test_registry.get_sample_value(
            "floor_arbitrage_requests_total", {"endpoint": "/stats/v1", "outcome": "success"}
        ) == 1
        assert test_registry.get_sample_value(
            "floor_arbitrage_requests_total", {"endpoint": "/stats/v1", "outcome": "error"}
        ) == 1
        assert test_registry.get_sample_value(
            "floor_arbitrage_request_duration_seconds_count", {"endpoint": "/stats/v1"}
        ) == 2

    def test_cache_and_retry_metrics(self, metrics, test_registry):
        metrics.record_cache_lookup("/stats/v1", hit=True)
        metrics.record_cache_lookup("/stats/v1", hit=False)
        metrics.record_retry("/stats/v1", "RATE_LIMIT")
        metrics.record_rate_limited("reservoir")

        output = generate_latest(test_registry).decode("utf-8")
        assert "floor_arbitrage_cache_hits_total" in output
        assert "floor_arbitrage_cache_misses_total" in output
        assert 'error_code="RATE_LIMIT"' in output
        assert 'bucket="reservoir"' in output

    def test_circuit_state(self, metrics, test_registry):
        metrics.record_circuit_state("reservoir", CircuitState.CLOSED, CircuitState.OPEN)
        assert test_registry.get_sample_value(
            "floor_arbitrage_circuit_state", {"circuit": "reservoir"}
        ) == 2

        metrics.record_circuit_state("reservoir", CircuitState.OPEN, CircuitState.HALF_OPEN)
        assert test_registry.get_sample_value(
            "floor_arbitrage_circuit_state", {"circuit": "reservoir"}
        ) == 1

    def test_trading_metrics(self, metrics, test_registry):
        metrics.record_sweep("0xabc", "rejected", "Price gap too small")
        metrics.record_sweep("0xabc", "executed", None)
        metrics.record_execution("0xabc", 0.18, 0.5)
        metrics.update_open_positions("0xabc", 3)

        assert test_registry.get_sample_value(
            "floor_arbitrage_sweeps_total",
            {"collection": "0xabc", "status": "executed", "reason": "none"},
        ) == 1
        assert test_registry.get_sample_value(
            "floor_arbitrage_open_positions", {"collection": "0xabc"}
        ) == 3
        assert test_registry.get_sample_value(
            "floor_arbitrage_last_activity_timestamp", {}
        ) > 0

    def test_metrics_summary(self, metrics):
        metrics.record_request("/stats/v1", True, 0.1)
        metrics.record_error("RATE_LIMIT", "warning")
        metrics.record_sweep("0xabc", "executed")

        summary = metrics.get_metrics_summary()

        assert summary["requests"] == 1
        assert summary["errors"] == 1
        assert summary["sweeps"] == 1
        assert summary["retries"] == 0
        assert "timestamp" in summary

    def test_timestamps_follow_injected_clock(self, test_registry, time_provider):
        metrics = ServiceMetrics(test_registry, time_provider)
        time_provider.set_time(1700000000.0)

        metrics.record_sweep("0xabc", "executed")

        assert test_registry.get_sample_value(
            "floor_arbitrage_last_activity_timestamp"
        ) == 1700000000.0
        assert metrics.get_metrics_summary()["timestamp"] == 1700000000.0

    @pytest.mark.asyncio
    async def test_metrics_server(self, metrics):
        """Test metrics HTTP server"""
        success = await metrics.start_server(port=0, host="127.0.0.1")

        if success:
            assert metrics._app is not None
            assert metrics._runner is not None

            await metrics.stop_server()
            assert metrics._runner is None


@pytest.mark.asyncio
async def test_metrics_server_endpoints(metrics):
    metrics.record_request("/stats/v1", True, 0.1)
    app = metrics.create_app()

    async with aiohttp.test_utils.TestClient(aiohttp.test_utils.TestServer(app)) as client:
        resp = await client.get("/metrics")
        assert resp.status == 200
        text = await resp.text()
        assert "floor_arbitrage_requests_total" in text

        resp = await client.get("/health")
        assert resp.status == 200
        json_data = await resp.json()
        assert json_data["status"] == "healthy"
        assert json_data["service"] == "floor_arbitrage_metrics"
