"""
Resilient HTTP client for the Reservoir marketplace API.

Every GET runs through the same pipeline:

    cache -> rate limiter -> circuit breaker -> retry -> aiohttp

and every failure leaving the client is a ReservoirError subclass.
POSTs (order execution) skip the cache and are never retried here.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiohttp

from .cache import MemoryCache, generate_cache_key
from .circuit_breaker import CircuitBreaker
from .config_schema import ClientConfig
from .constants import (
    API_KEY_HEADER,
    API_KEY_SETTING,
    RATE_LIMIT_BUCKET,
)
from .exceptions import (
    AuthenticationError,
    HttpError,
    NetworkError,
    RateLimitError,
    ReservoirError,
    RequestTimeoutError,
    ValidationError,
    classify_http_status,
    normalize_error,
)
from .interfaces import (
    AgentRuntime,
    RandomProvider,
    SystemTimeProvider,
    TimeProvider,
)
from .monitoring import Observability
from .rate_limiter import RateLimiter
from .retry import RetryPolicy
from .utils import sanitize_params

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (RateLimitError, RequestTimeoutError, NetworkError)


def counts_against_circuit(error: BaseException) -> bool:
    """Client-side mistakes (bad params, 4xx) say nothing about API health."""
    if isinstance(error, ValidationError):
        return False
    if isinstance(error, HttpError) and not error.is_server_error:
        return False
    return True


def trips_circuit(error: BaseException) -> bool:
    return isinstance(error, (AuthenticationError, RateLimitError))


def _query_items(params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    items = []
    for key, value in params.items():
        if isinstance(value, list):
            items.extend((key, v) for v in value)
        else:
            items.append((key, value))
    return items


def _parse_body(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text) if text else None
    except json.JSONDecodeError as e:
        raise ValidationError("response", f"Invalid JSON response: {e.msg}")
    if not isinstance(data, dict):
        raise ValidationError("response", "Invalid response data format")
    return data


class ResilientClient:
    """
    Shared request capability injected into the market and execution services.

    Cache, breaker and limiter state is shared by every call made through
    one instance.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        observability: Optional[Observability] = None,
        cache: Optional[MemoryCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
        time_provider: Optional[TimeProvider] = None,
        random_provider: Optional[RandomProvider] = None,
    ):
        self.config = config or ClientConfig()
        self._time = time_provider or SystemTimeProvider()
        self.observability = observability or Observability(time_provider=self._time)
        metrics = self.observability.metrics

        if cache is None and self.config.cache_config.enabled:
            cache = MemoryCache(self.config.cache_config.default_ttl, self._time)
        self.cache = cache

        if rate_limiter is None and self.config.rate_limit.enabled:
            rate_limiter = RateLimiter(
                self.config.rate_limit.requests_per_window,
                self.config.rate_limit.window_seconds,
                self._time,
            )
        self.rate_limiter = rate_limiter

        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            name="reservoir",
            max_failures=self.config.circuit_breaker.max_failures,
            reset_timeout=self.config.circuit_breaker.reset_timeout,
            is_failure=counts_against_circuit,
            trips_immediately=trips_circuit,
            on_state_change=metrics.record_circuit_state,
            time_provider=self._time,
        )

        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_strategy.base_delay,
            jitter=self.config.retry_strategy.jitter,
            retryable=RETRYABLE_ERRORS,
            max_delay=self.config.retry_strategy.max_delay,
            time_provider=self._time,
            random_provider=random_provider,
            on_retry=self._on_retry,
        )

        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=self.config.timeout / 1000.0)
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)
        self._metrics_server = False

    async def __aenter__(self) -> "ResilientClient":
        await self._ensure_session()
        await self.start_telemetry()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def start_telemetry(self) -> bool:
        """Serve /metrics and /health when telemetry has a metrics_port."""
        telemetry = self.config.telemetry
        if not telemetry.enabled or telemetry.metrics_port is None or self._metrics_server:
            return False
        self._metrics_server = await self.observability.metrics.start_server(
            port=telemetry.metrics_port
        )
        if self._metrics_server:
            logger.info(f"{telemetry.service_name} telemetry on port {telemetry.metrics_port}")
        return self._metrics_server

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
        if self._metrics_server:
            await self.observability.metrics.stop_server()
            self._metrics_server = False

    def _on_retry(self, endpoint: str, attempt: int, error: BaseException, delay_ms: float):
        code = error.code.value if isinstance(error, ReservoirError) else "UNKNOWN_ERROR"
        self.observability.metrics.record_retry(endpoint, code)

    def resolve_api_key(self, runtime: Optional[AgentRuntime]) -> Optional[str]:
        """Runtime setting first, then the statically configured key."""
        if runtime is not None:
            key = runtime.get_setting(API_KEY_SETTING)
            if key:
                return key
        return self.config.api_key

    def _headers(self, runtime: Optional[AgentRuntime]) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        api_key = self.resolve_api_key(runtime)
        if api_key:
            headers[API_KEY_HEADER] = api_key
        else:
            logger.debug("No API key configured, sending unauthenticated request")
        return headers

    async def _send(
        self,
        method: str,
        endpoint: str,
        headers: Dict[str, str],
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """One HTTP round trip; raises only ReservoirError."""
        session = await self._ensure_session()
        url = f"{self.config.base_url}{endpoint}"
        started = self._time.current_timestamp()
        success = False
        try:
            async with self._semaphore:
                async with session.request(
                    method,
                    url,
                    params=_query_items(params) if params else None,
                    json=body,
                    headers=headers,
                    timeout=self._timeout,
                ) as response:
                    text = await response.text()
                    if not 200 <= response.status < 300:
                        try:
                            error_body = json.loads(text) if text else None
                        except json.JSONDecodeError:
                            error_body = None
                        raise classify_http_status(
                            response.status, response.headers, error_body
                        )
                    data = _parse_body(text)
            success = True
            return data
        except ReservoirError:
            raise
        except Exception as e:
            raise normalize_error(e) from e
        finally:
            self.observability.metrics.record_request(
                endpoint, success, self._time.current_timestamp() - started
            )

    async def request(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        runtime: Optional[AgentRuntime] = None,
        ttl: Optional[float] = None,
        use_cache: bool = True,
        operation: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Cached, rate-limited, circuit-protected, retried GET.

        Args:
            endpoint: API path such as "/orders/asks/v5"
            params: Query parameters; None values are dropped
            runtime: Host runtime used to resolve the API key
            ttl: Freshness for this call in seconds (defaults to the cache's)
            use_cache: Set False to force a remote call
            operation: Name recorded by the performance monitor

        Returns:
            The decoded JSON object
        """
        cleaned = sanitize_params(params)
        operation = operation or endpoint
        cache_key = None

        if self.cache is not None and use_cache:
            cache_key = generate_cache_key(endpoint, cleaned)
            cached = await self.cache.get(cache_key, ttl)
            self.observability.metrics.record_cache_lookup(endpoint, cached is not None)
            if cached is not None:
                logger.debug(f"Cache hit for {endpoint}")
                return cached

        with self.observability.monitor.track(operation, endpoint=endpoint, method="GET"):
            try:
                await self._consume_budget()
                headers = self._headers(runtime)
                data = await self.circuit_breaker.execute(
                    lambda: self.retry_policy.run(
                        lambda: self._send("GET", endpoint, headers, params=cleaned),
                        name=endpoint,
                    )
                )
            except Exception as e:
                self._raise_normalized(e, operation, endpoint)

        if cache_key is not None:
            await self.cache.set(cache_key, data, ttl)
        return data

    async def post(
        self,
        endpoint: str,
        body: Dict[str, Any],
        runtime: Optional[AgentRuntime] = None,
        operation: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Single-shot POST for execution calls: no cache, no retry."""
        operation = operation or endpoint
        with self.observability.monitor.track(operation, endpoint=endpoint, method="POST"):
            try:
                await self._consume_budget()
                headers = self._headers(runtime)
                return await self.circuit_breaker.execute(
                    lambda: self._send("POST", endpoint, headers, body=body)
                )
            except Exception as e:
                self._raise_normalized(e, operation, endpoint)

    async def _consume_budget(self) -> None:
        if self.rate_limiter is None:
            return
        try:
            await self.rate_limiter.consume(RATE_LIMIT_BUCKET, 1)
        except RateLimitError:
            self.observability.metrics.record_rate_limited(RATE_LIMIT_BUCKET)
            raise

    def _raise_normalized(self, error: Exception, operation: str, endpoint: str):
        normalized = self.observability.error_handler.handle_error(
            error, {"operation": operation, "endpoint": endpoint}
        )
        if normalized is error:
            raise error
        raise normalized from error

    def get_status(self) -> Dict[str, Any]:
        return {
            "base_url": self.config.base_url,
            "circuit": self.circuit_breaker.get_status(),
            "cached_entries": len(self.cache) if self.cache is not None else 0,
        }
