"""
Market query service: typed, cached reads of order books and statistics.

Order books change quickly and are cached for a minute; aggregate
statistics and leaderboards for five.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .client import ResilientClient
from .constants import (
    ASKS_ENDPOINT,
    BIDS_ENDPOINT,
    FLOOR_LISTINGS_ENDPOINT,
    FLOOR_SNAPSHOT_LIMIT,
    MARKET_STATS_TTL_SECONDS,
    ORDER_BOOK_TTL_SECONDS,
    STATS_ENDPOINT,
    TOP_TRADERS_ENDPOINT,
    TOP_TRADERS_TTL_SECONDS,
)
from .exceptions import ValidationError
from .interfaces import AgentRuntime
from .market_types import AsksPage, BidsPage, MarketStats, TopTrader

logger = logging.getLogger(__name__)

_ORDER_STATUSES = {"active", "inactive", "expired", "cancelled", "filled"}
_FLOOR_SORTS = {"price": "floorAskPrice", "rarity": "rarity"}
_TIMEFRAMES = {"1h", "6h", "24h", "7d", "30d"}


def _check_limit(limit: Optional[int], maximum: int = 1000) -> None:
    if limit is None:
        return
    try:
        value = int(limit)
    except (TypeError, ValueError) as e:
        raise ValidationError("limit", f"limit must be an integer, got {limit!r}") from e
    if not 1 <= value <= maximum:
        raise ValidationError("limit", f"limit must be between 1 and {maximum}")


class MarketService:
    def __init__(self, client: ResilientClient):
        self.client = client

    async def get_market_stats(
        self,
        runtime: Optional[AgentRuntime] = None,
        collection: Optional[str] = None,
    ) -> MarketStats:
        """Aggregate market statistics, optionally scoped to one collection."""
        data = await self.client.request(
            STATS_ENDPOINT,
            {"collection": collection},
            runtime,
            ttl=MARKET_STATS_TTL_SECONDS,
            operation="get_market_stats",
        )
        return MarketStats.from_api(data)

    async def get_asks(
        self,
        query: Dict[str, Any],
        runtime: Optional[AgentRuntime] = None,
    ) -> AsksPage:
        """
        Active sell orders.

        `query` uses the API's parameter names (collection, token, maker,
        status, sortBy, sortDirection, limit, continuation, ...).
        """
        status = query.get("status")
        if status is not None and status not in _ORDER_STATUSES:
            raise ValidationError("status", f"Unsupported order status: {status}")
        _check_limit(query.get("limit"))

        data = await self.client.request(
            ASKS_ENDPOINT,
            query,
            runtime,
            ttl=ORDER_BOOK_TTL_SECONDS,
            operation="get_asks",
        )
        return AsksPage.from_api(data)

    async def get_bids(
        self,
        query: Dict[str, Any],
        runtime: Optional[AgentRuntime] = None,
    ) -> BidsPage:
        status = query.get("status")
        if status is not None and status not in _ORDER_STATUSES:
            raise ValidationError("status", f"Unsupported order status: {status}")
        _check_limit(query.get("limit"))

        data = await self.client.request(
            BIDS_ENDPOINT,
            query,
            runtime,
            ttl=ORDER_BOOK_TTL_SECONDS,
            operation="get_bids",
        )
        return BidsPage.from_api(data)

    async def get_floor_listings(
        self,
        collection: str,
        limit: int = FLOOR_SNAPSHOT_LIMIT,
        sort_by: str = "price",
        currencies: Optional[Sequence[str]] = None,
        max_price: Optional[float] = None,
        min_price: Optional[float] = None,
        runtime: Optional[AgentRuntime] = None,
    ) -> AsksPage:
        """Cheapest listings of a collection with royalties normalized."""
        if not collection:
            raise ValidationError("collection", "Collection address is required")
        if sort_by not in _FLOOR_SORTS:
            raise ValidationError("sort_by", f"Unsupported sort: {sort_by}")
        _check_limit(limit)
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("min_price", "min_price cannot exceed max_price")

        params = {
            "collection": collection,
            "limit": limit,
            "sortBy": _FLOOR_SORTS[sort_by],
            "sortDirection": "asc",
            "includeAttributes": True,
            "includeRawData": True,
            "includeDynamicPricing": True,
            "includeRoyalties": True,
            "normalizeRoyalties": True,
            "currencies": ",".join(currencies) if currencies else None,
            "maxPrice": max_price,
            "minPrice": min_price,
        }
        data = await self.client.request(
            FLOOR_LISTINGS_ENDPOINT,
            params,
            runtime,
            ttl=ORDER_BOOK_TTL_SECONDS,
            operation="get_floor_listings",
        )
        return AsksPage.from_api(data)

    async def get_top_traders(
        self,
        query: Dict[str, Any],
        runtime: Optional[AgentRuntime] = None,
    ) -> List[TopTrader]:
        timeframe = query.get("timeframe")
        if timeframe is not None and timeframe not in _TIMEFRAMES:
            raise ValidationError("timeframe", f"Unsupported timeframe: {timeframe}")

        data = await self.client.request(
            TOP_TRADERS_ENDPOINT,
            query,
            runtime,
            ttl=TOP_TRADERS_TTL_SECONDS,
            operation="get_top_traders",
        )
        return [TopTrader.from_api(u) for u in data.get("users") or [] if isinstance(u, dict)]
