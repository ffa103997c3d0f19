"""
Configuration schema validation using Pydantic
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_BASE_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_FAILURES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_REQUESTS_PER_WINDOW,
    DEFAULT_RESET_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_MS,
)
from .utils import is_valid_address


class RetryStrategyConfig(BaseModel):
    """Backoff settings for retried GET requests"""

    base_delay: float = Field(
        ge=0, le=60000, default=DEFAULT_BASE_DELAY_MS, description="Base delay in ms"
    )
    max_delay: float = Field(ge=0, le=600000, default=DEFAULT_MAX_DELAY_MS)
    jitter: bool = True

    @model_validator(mode="after")
    def validate_delays(self):
        if self.base_delay > self.max_delay:
            raise ValueError("base_delay must not exceed max_delay")
        return self

    model_config = {"extra": "forbid"}


class CacheConfig(BaseModel):
    enabled: bool = True
    default_ttl: float = Field(
        gt=0, le=86400, default=DEFAULT_CACHE_TTL_SECONDS, description="Seconds"
    )

    model_config = {"extra": "forbid"}


class RateLimitConfig(BaseModel):
    """Local request budget for the remote API"""

    enabled: bool = True
    requests_per_window: int = Field(ge=1, le=100000, default=DEFAULT_REQUESTS_PER_WINDOW)
    window_seconds: float = Field(gt=0, le=3600, default=DEFAULT_RATE_WINDOW_SECONDS)

    model_config = {"extra": "forbid"}


class CircuitBreakerConfig(BaseModel):
    max_failures: int = Field(ge=1, le=1000, default=DEFAULT_MAX_FAILURES)
    reset_timeout: float = Field(
        gt=0, le=3600, default=DEFAULT_RESET_TIMEOUT_SECONDS, description="Seconds"
    )

    model_config = {"extra": "forbid"}


class TelemetryConfig(BaseModel):
    enabled: bool = True
    service_name: str = "floor-arbitrage"
    metrics_port: Optional[int] = Field(ge=1, le=65535, default=None)

    model_config = {"extra": "forbid"}


class ClientConfig(BaseModel):
    """Resilient marketplace client configuration"""

    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(
        gt=0, le=600000, default=DEFAULT_TIMEOUT_MS, description="Request timeout in ms"
    )
    max_retries: int = Field(ge=0, le=20, default=DEFAULT_MAX_RETRIES)
    retry_strategy: RetryStrategyConfig = Field(default_factory=RetryStrategyConfig)
    cache_config: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    max_concurrent: int = Field(ge=1, le=100, default=DEFAULT_MAX_CONCURRENT)
    batch_size: int = Field(ge=1, le=1000, default=DEFAULT_BATCH_SIZE)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {v}")
        return v.rstrip("/")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }


class SweepConfig(BaseModel):
    """
    Policy for one floor sweep.

    Every field is required: a sweep never runs on an implied default
    policy. Prices and profits are in ETH, gas price in gwei, holding
    time in seconds.
    """

    min_price_gap_percent: float = Field(ge=0, le=10000)
    max_purchase_price: float = Field(gt=0)
    wallet_address: str
    target_profit_percent: float = Field(ge=0, le=10000)
    max_slippage_bps: float = Field(ge=0, le=10000)
    min_profit_after_gas: float = Field(ge=0)
    max_gas_price: float = Field(ge=0, le=100000)
    max_positions_per_collection: int = Field(ge=0)
    max_total_positions: int = Field(ge=0)
    min_market_cap: float = Field(ge=0)
    min_unique_holders: int = Field(ge=0)
    min_daily_volume: float = Field(ge=0)
    max_holding_time: float = Field(gt=0)

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v):
        if not is_valid_address(v):
            raise ValueError(f"Invalid wallet address: {v}")
        return v

    @model_validator(mode="after")
    def validate_position_caps(self):
        if self.max_positions_per_collection > self.max_total_positions:
            raise ValueError(
                "max_positions_per_collection cannot exceed max_total_positions"
            )
        return self

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }


def validate_client_config(config_dict: Dict[str, Any]) -> ClientConfig:
    """
    Validate a client configuration dictionary

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return ClientConfig(**config_dict)


def validate_sweep_config(config_dict: Dict[str, Any]) -> SweepConfig:
    """
    Validate a sweep policy dictionary

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return SweepConfig(**config_dict)
