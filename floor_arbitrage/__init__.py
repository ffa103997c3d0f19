"""
Floor Arbitrage.

A resilient client for the Reservoir NFT marketplace API (caching, rate
limiting, retries and circuit breaking) and a floor-sweep engine that buys
underpriced floor listings and relists them at a target profit.
"""

PROJECT_NAME = "floor-sweep-arbitrage"

from floor_arbitrage.version import __version__ as VERSION
from floor_arbitrage.client import ResilientClient
from floor_arbitrage.config_loader import (
    load_client_config,
    load_environment,
    load_sweep_config,
)
from floor_arbitrage.config_schema import ClientConfig, SweepConfig
from floor_arbitrage.constants import CircuitState, ErrorCode, SweepStatus
from floor_arbitrage.exceptions import (
    AuthenticationError,
    CircuitOpenError,
    ConfigurationError,
    RateLimitError,
    ReservoirError,
    ValidationError,
)
from floor_arbitrage.execute import ExecuteService
from floor_arbitrage.market import MarketService
from floor_arbitrage.monitoring import Observability
from floor_arbitrage.positions import PositionLedger
from floor_arbitrage.trading import TradingService
from floor_arbitrage.trading_types import Position, SweepResult

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ResilientClient",
    "MarketService",
    "ExecuteService",
    "TradingService",
    "PositionLedger",
    "Observability",
    "ClientConfig",
    "SweepConfig",
    "load_client_config",
    "load_sweep_config",
    "load_environment",
    "CircuitState",
    "ErrorCode",
    "SweepStatus",
    "ReservoirError",
    "RateLimitError",
    "AuthenticationError",
    "ValidationError",
    "CircuitOpenError",
    "ConfigurationError",
    "Position",
    "SweepResult",
]
