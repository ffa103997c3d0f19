"""
Constants and enums for the floor arbitrage system.

Centralizes endpoint paths, cache lifetimes, gas assumptions and the
enumerations shared by the request layer and the trading engine.
"""

from enum import Enum


class ErrorCode(Enum):
    """Error codes carried by every normalized request failure."""

    RATE_LIMIT = "RATE_LIMIT"
    API_KEY_INVALID = "API_KEY_INVALID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    ORDER_ERROR = "ORDER_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(Enum):
    """How loudly a failure should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    WARNING = "warning"
    HIGH = "high"
    CRITICAL = "critical"


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class SweepStatus(Enum):
    """Terminal outcome of a single floor sweep."""

    EXECUTED = "executed"
    PARTIAL = "partial"
    REJECTED = "rejected"
    FAILED = "failed"


# Remote API
DEFAULT_BASE_URL = "https://api.reservoir.tools"
API_KEY_SETTING = "RESERVOIR_API_KEY"
API_KEY_HEADER = "x-api-key"
RATE_LIMIT_BUCKET = "reservoir"
CACHE_KEY_PREFIX = "reservoir"
DEFAULT_SOURCE = "floor-arbitrage"

# Listing prices are compared in the chain's native currency (ETH)
NATIVE_CURRENCY_ADDRESS = "0x" + "00" * 20
NATIVE_CURRENCY_SYMBOL = "ETH"

# Client defaults (times in milliseconds unless noted)
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 30000
DEFAULT_RETRY_AFTER_MS = 60000
DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_BATCH_SIZE = 20
DEFAULT_MAX_FAILURES = 5
DEFAULT_RESET_TIMEOUT_SECONDS = 60
DEFAULT_REQUESTS_PER_WINDOW = 120
DEFAULT_RATE_WINDOW_SECONDS = 60

# Cache lifetimes per data class (seconds)
ORDER_BOOK_TTL_SECONDS = 60
MARKET_STATS_TTL_SECONDS = 300
TOP_TRADERS_TTL_SECONDS = 300

# Market query endpoints
STATS_ENDPOINT = "/stats/v1"
ASKS_ENDPOINT = "/orders/asks/v5"
BIDS_ENDPOINT = "/orders/bids/v6"
FLOOR_LISTINGS_ENDPOINT = "/orders/asks/v4"
TOP_TRADERS_ENDPOINT = "/users/top/v2"

# Execution endpoints
EXECUTE_BUY_ENDPOINT = "/execute/buy/v7"
EXECUTE_SELL_ENDPOINT = "/execute/sell/v7"
EXECUTE_BID_ENDPOINT = "/execute/bid/v7"
EXECUTE_LIST_ENDPOINT = "/execute/list/v5"
EXECUTE_CANCEL_ENDPOINT = "/execute/cancel/v3"
EXECUTE_MINT_ENDPOINT = "/execute/mint/v1"
CROSS_POSTING_ENDPOINT = "/cross-posting-orders/v1"

# Gas assumptions for one buy + relist pair
TYPICAL_BUY_GAS = 150000
TYPICAL_LIST_GAS = 100000
GWEI_TO_ETH = "1e-9"
WEI_PER_ETH = 10**18

# Floor sweep
FLOOR_SNAPSHOT_LIMIT = 10
DEFAULT_ORDER_KIND = "seaport"
DEFAULT_ORDERBOOK = "reservoir"

# Performance monitoring
PERFORMANCE_WINDOW_SIZE = 1000
ALERT_LATENCY_MS = 1000
ALERT_ERROR_RATE = 0.05
ALERT_THROUGHPUT_PER_MINUTE = 100
RECENT_ERROR_LIMIT = 100

# Rejection reasons reported by the sweep engine
REASON_POSITION_LIMITS = "Position limits exceeded"
REASON_MARKET_CONDITIONS = "Market conditions unfavorable"
REASON_INSUFFICIENT_LISTINGS = "Insufficient listings to analyze floor"
REASON_INVALID_PRICE = "Invalid price data in listings"
REASON_MISSING_TOKEN = "Missing token ID in listing"
REASON_GAP_TOO_SMALL = "Price gap too small"
REASON_PRICE_TOO_HIGH = "Price above maximum purchase threshold"
REASON_INSUFFICIENT_PROFIT = "Insufficient profit after gas costs"
REASON_INVALID_BUY_RESULT = "Invalid buy result data"
