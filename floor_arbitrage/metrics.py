"""
Prometheus Metrics for the floor arbitrage client and sweep engine

Exposes request, resilience and trading metrics for monitoring and alerting.
"""

import json
import logging
import threading
from typing import Any, Dict, Optional

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from .constants import CircuitState
from .interfaces import SystemTimeProvider, TimeProvider

logger = logging.getLogger(__name__)

_CIRCUIT_STATE_VALUES = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


class ServiceMetrics:
    """
    Prometheus metrics collection and exposure

    Provides metrics for:
    - Outbound request latency and outcomes
    - Retries, cache efficiency, throttling and circuit state
    - Sweep outcomes, open positions, profit and slippage
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        """Initialize metrics with a dedicated registry unless one is supplied"""
        self.registry = registry if registry is not None else CollectorRegistry()
        self._time = time_provider or SystemTimeProvider()
        self._initialize_metrics()

        # Server components
        self._app = None
        self._runner = None
        self._site = None

        self._lock = threading.RLock()

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === REQUEST METRICS ===
        self.requests_total = Counter(
            "floor_arbitrage_requests_total",
            "Total outbound API requests by endpoint and outcome",
            ["endpoint", "outcome"],
            registry=self.registry,
        )

        self.request_duration_seconds = Histogram(
            "floor_arbitrage_request_duration_seconds",
            "Outbound API request latency",
            ["endpoint"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.retries_total = Counter(
            "floor_arbitrage_retries_total",
            "Total retry attempts scheduled",
            ["endpoint", "error_code"],
            registry=self.registry,
        )

        self.cache_hits_total = Counter(
            "floor_arbitrage_cache_hits_total",
            "Responses served from cache",
            ["endpoint"],
            registry=self.registry,
        )

        self.cache_misses_total = Counter(
            "floor_arbitrage_cache_misses_total",
            "Cache lookups that required a remote call",
            ["endpoint"],
            registry=self.registry,
        )

        self.rate_limited_total = Counter(
            "floor_arbitrage_rate_limited_total",
            "Requests rejected by the local rate limiter",
            ["bucket"],
            registry=self.registry,
        )

        # === RESILIENCE METRICS ===
        self.circuit_state = Gauge(
            "floor_arbitrage_circuit_state",
            "Circuit state (0=closed, 1=half_open, 2=open)",
            ["circuit"],
            registry=self.registry,
        )

        self.circuit_transitions_total = Counter(
            "floor_arbitrage_circuit_transitions_total",
            "Circuit breaker state transitions",
            ["circuit", "to_state"],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "floor_arbitrage_errors_total",
            "Normalized errors by code and severity",
            ["code", "severity"],
            registry=self.registry,
        )

        # === TRADING METRICS ===
        self.sweeps_total = Counter(
            "floor_arbitrage_sweeps_total",
            "Floor sweep outcomes",
            ["collection", "status", "reason"],
            registry=self.registry,
        )

        self.open_positions = Gauge(
            "floor_arbitrage_open_positions",
            "Currently tracked positions per collection",
            ["collection"],
            registry=self.registry,
        )

        self.estimated_profit_eth = Histogram(
            "floor_arbitrage_estimated_profit_eth",
            "Estimated profit after gas for executed sweeps",
            ["collection"],
            buckets=[0, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry,
        )

        self.slippage_percent = Histogram(
            "floor_arbitrage_slippage_percent",
            "Actual buy slippage versus the observed floor",
            ["collection"],
            buckets=[-1, 0, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
            registry=self.registry,
        )

        self.last_activity_timestamp = Gauge(
            "floor_arbitrage_last_activity_timestamp",
            "Unix timestamp of last sweep attempt",
            registry=self.registry,
        )

    # === METRIC RECORDING METHODS ===

    def record_request(self, endpoint: str, success: bool, duration_seconds: float):
        """Record a completed outbound request"""
        with self._lock:
            self.requests_total.labels(
                endpoint=endpoint, outcome="success" if success else "error"
            ).inc()
            self.request_duration_seconds.labels(endpoint=endpoint).observe(
                duration_seconds
            )

    def record_retry(self, endpoint: str, error_code: str):
        with self._lock:
            self.retries_total.labels(endpoint=endpoint, error_code=error_code).inc()

    def record_cache_lookup(self, endpoint: str, hit: bool):
        with self._lock:
            if hit:
                self.cache_hits_total.labels(endpoint=endpoint).inc()
            else:
                self.cache_misses_total.labels(endpoint=endpoint).inc()

    def record_rate_limited(self, bucket: str):
        with self._lock:
            self.rate_limited_total.labels(bucket=bucket).inc()

    def record_circuit_state(
        self, circuit: str, old_state: CircuitState, new_state: CircuitState
    ):
        """Record a circuit transition; signature matches CircuitBreaker.on_state_change"""
        with self._lock:
            self.circuit_state.labels(circuit=circuit).set(
                _CIRCUIT_STATE_VALUES[new_state]
            )
            self.circuit_transitions_total.labels(
                circuit=circuit, to_state=new_state.value
            ).inc()

    def record_error(self, code: str, severity: str):
        with self._lock:
            self.errors_total.labels(code=code, severity=severity).inc()

    def record_sweep(self, collection: str, status: str, reason: str = "none"):
        """Record the terminal outcome of a sweep"""
        with self._lock:
            self.sweeps_total.labels(
                collection=collection, status=status, reason=reason or "none"
            ).inc()
            self.last_activity_timestamp.set(self._time.current_timestamp())

    def record_execution(
        self, collection: str, estimated_profit: float, slippage_percent: float
    ):
        with self._lock:
            self.estimated_profit_eth.labels(collection=collection).observe(
                estimated_profit
            )
            self.slippage_percent.labels(collection=collection).observe(
                slippage_percent
            )

    def update_open_positions(self, collection: str, count: int):
        with self._lock:
            self.open_positions.labels(collection=collection).set(count)

    # === SERVER MANAGEMENT ===

    def create_app(self, path: str = "/metrics") -> web.Application:
        app = web.Application()
        app.router.add_get(path, self._metrics_handler)
        app.router.add_get("/health", self._health_handler)
        return app

    async def start_server(
        self, port: int = 8000, host: str = "0.0.0.0", path: str = "/metrics"
    ) -> bool:
        """Start Prometheus metrics HTTP server"""
        try:
            self._app = self.create_app(path)
            self._runner = web.AppRunner(self._app)
            await self._runner.setup()

            self._site = web.TCPSite(self._runner, host, port)
            await self._site.start()

            logger.info(f"Metrics server started on http://{host}:{port}{path}")
            return True

        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    async def stop_server(self):
        """Stop the metrics server"""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._site = None
        self._runner = None
        logger.info("Metrics server stopped")

    async def _metrics_handler(self, request):
        """Handle metrics endpoint requests"""
        metrics_output = generate_latest(self.registry)
        # aiohttp rejects a charset inside content_type
        content_type = CONTENT_TYPE_LATEST.split(";")[0]
        return web.Response(
            text=metrics_output.decode("utf-8"), content_type=content_type
        )

    async def _health_handler(self, request):
        """Handle health check endpoint"""
        return web.Response(
            text=json.dumps({"status": "healthy", "service": "floor_arbitrage_metrics"}),
            content_type="application/json",
        )

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Snapshot of the counters most useful in logs"""
        def total(counter) -> float:
            return sum(
                sample.value
                for metric in counter.collect()
                for sample in metric.samples
                if sample.name.endswith("_total")
            )

        return {
            "requests": total(self.requests_total),
            "retries": total(self.retries_total),
            "cache_hits": total(self.cache_hits_total),
            "cache_misses": total(self.cache_misses_total),
            "errors": total(self.errors_total),
            "sweeps": total(self.sweeps_total),
            "timestamp": self._time.current_timestamp(),
        }
