"""
Floor sweep engine.

A sweep walks a fixed sequence of gates and stops at the first one that
fails, reporting the reason in a SweepResult instead of raising:

1. evict stale positions
2. position limits (local, no network)
3. market trend and collection health
4. listing snapshot (two priced listings, token id on the floor)
5. price gap and purchase budget
6. profitability after gas
7. buy with a slippage bound
8. relist at the target price
9. record the position

Sweeps on the same collection are serialized. Sweeps on different
collections run concurrently and share the total position cap through
ledger reservations.
"""

import asyncio
import logging
from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .constants import (
    FLOOR_SNAPSHOT_LIMIT,
    GWEI_TO_ETH,
    REASON_GAP_TOO_SMALL,
    REASON_INSUFFICIENT_LISTINGS,
    REASON_INSUFFICIENT_PROFIT,
    REASON_INVALID_BUY_RESULT,
    REASON_INVALID_PRICE,
    REASON_MARKET_CONDITIONS,
    REASON_MISSING_TOKEN,
    REASON_POSITION_LIMITS,
    REASON_PRICE_TOO_HIGH,
    TYPICAL_BUY_GAS,
    TYPICAL_LIST_GAS,
    WEI_PER_ETH,
    SweepStatus,
)
from .config_schema import SweepConfig
from .execute import ExecuteService
from .execution_types import ListingItem, ListingRequest, OrderItem, OrderRequest
from .interfaces import AgentRuntime, SystemTimeProvider, TimeProvider
from .market import MarketService
from .market_types import MarketStats, OrderListing
from .monitoring import Observability
from .positions import PositionLedger
from .trading_types import (
    CollectionHealth,
    GasEstimate,
    MarketTrend,
    Position,
    Rejection,
    SweepResult,
)
from .utils import basis_points_to_decimal, calculate_percentage, to_decimal

logger = logging.getLogger(__name__)


def _dec(value) -> Decimal:
    return Decimal(str(value))


def assess_market_trend(stats: MarketStats, listings: Sequence[OrderListing]) -> MarketTrend:
    """Uptrend: 24h and 7d volume both growing with at least one active listing."""
    prices = [l.price_value for l in listings if l.price_value is not None]
    average = sum(prices, Decimal("0")) / len(prices) if prices else Decimal("0")
    price_change = (
        calculate_percentage(average - _dec(stats.average_price), _dec(stats.average_price))
        if prices
        else Decimal("0")
    )
    return MarketTrend(
        volume_24h=stats.volume_24h,
        volume_change_24h=stats.volume_change_24h,
        price_change_24h=float(price_change),
        sales_count_24h=stats.total_sales,
        average_listing_price=float(average),
        is_uptrend=(
            stats.volume_change_24h > 0
            and stats.volume_change_7d > 0
            and len(listings) > 0
        ),
    )


def assess_collection_health(
    stats: MarketStats, listings: Sequence[OrderListing]
) -> CollectionHealth:
    """Healthy: positive floor and market cap with at least two active listings."""
    lowest = listings[0].price_value if listings else None
    floor_price = float(lowest) if lowest is not None else stats.floor_price
    # total traded volume stands in for market cap
    market_cap = stats.total_volume
    return CollectionHealth(
        unique_holders=stats.unique_holders,
        floor_price=floor_price,
        market_cap=market_cap,
        is_healthy=floor_price > 0 and market_cap > 0 and len(listings) >= 2,
    )


def estimate_gas_costs(gas_price_gwei: Union[float, Decimal]) -> GasEstimate:
    """Gas for one buy plus one listing at the given gas price, in ETH."""
    total_gas = TYPICAL_BUY_GAS + TYPICAL_LIST_GAS
    return GasEstimate(
        buy_gas=TYPICAL_BUY_GAS,
        list_gas=TYPICAL_LIST_GAS,
        total_gas_in_eth=Decimal(total_gas) * _dec(gas_price_gwei) * Decimal(GWEI_TO_ETH),
    )


def eth_to_wei(amount: Decimal) -> str:
    return str(int((amount * WEI_PER_ETH).to_integral_value(rounding=ROUND_DOWN)))


class TradingService:
    def __init__(
        self,
        market: MarketService,
        execute: ExecuteService,
        observability: Optional[Observability] = None,
        ledger: Optional[PositionLedger] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.market = market
        self.execute = execute
        self._time = time_provider or SystemTimeProvider()
        self.observability = observability or Observability(time_provider=self._time)
        self.ledger = ledger or PositionLedger(self._time)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, collection: str) -> asyncio.Lock:
        lock = self._locks.get(collection)
        if lock is None:
            lock = self._locks[collection] = asyncio.Lock()
        return lock

    async def sweep_floor(
        self,
        collection: str,
        config: SweepConfig,
        runtime: Optional[AgentRuntime] = None,
    ) -> SweepResult:
        """Try to buy the floor of `collection` and relist it for profit."""
        started = self._time.current_timestamp()
        async with self._lock_for(collection):
            result = await self._sweep(collection, config, runtime)

        duration_ms = (self._time.current_timestamp() - started) * 1000
        metrics = self.observability.metrics
        self.observability.monitor.record_metric(
            "sweep_floor",
            duration_ms,
            result.status != SweepStatus.FAILED,
            {"collection": collection, "status": result.status.value, "error": result.error},
        )
        reason = result.details.get("error_code") or result.error
        metrics.record_sweep(collection, result.status.value, reason if reason else "none")
        metrics.update_open_positions(collection, len(self.ledger.get_positions(collection)))
        return result

    async def _sweep(
        self,
        collection: str,
        config: SweepConfig,
        runtime: Optional[AgentRuntime],
    ) -> SweepResult:
        self.ledger.cleanup_stale(config.max_holding_time)

        if not self.ledger.try_reserve(
            collection, config.max_positions_per_collection, config.max_total_positions
        ):
            logger.info(f"Sweep on {collection} rejected: {REASON_POSITION_LIMITS}")
            return self._rejected(collection, Rejection(REASON_POSITION_LIMITS))

        committed = False
        trend: Optional[MarketTrend] = None
        health: Optional[CollectionHealth] = None
        try:
            trend, health = await self._validate_market(collection, runtime)
            if not self._market_acceptable(trend, health, config):
                return self._rejected(
                    collection, Rejection(REASON_MARKET_CONDITIONS), trend, health
                )

            snapshot = await self._floor_snapshot(collection, runtime)
            if isinstance(snapshot, Rejection):
                return self._rejected(collection, snapshot, trend, health)
            floor, lowest, second = snapshot

            opportunity = self._check_opportunity(lowest, second, config)
            if isinstance(opportunity, Rejection):
                return self._rejected(collection, opportunity, trend, health)
            gas, target_price, estimated_profit = opportunity

            token = f"{collection}:{floor.token_id}"
            max_buy_price = lowest * (1 + basis_points_to_decimal(config.max_slippage_bps))
            buy = await self.execute.execute_buy(
                OrderRequest(
                    items=[OrderItem(token=token, quantity=1)],
                    taker=config.wallet_address,
                    max_price_per_token=max_buy_price,
                    skip_balance_check=False,
                ),
                runtime,
            )
            actual_price = buy.filled_price()
            if actual_price is None or actual_price <= 0:
                # the buy may still settle; keep what the response gave us for reconciliation
                logger.error(
                    f"Buy of {token} returned no usable fill quote; "
                    f"order ids {buy.order_ids}, {len(buy.steps)} steps"
                )
                result = self._failed(collection, REASON_INVALID_BUY_RESULT, trend, health)
                result.token_id = floor.token_id
                result.details.update(
                    {
                        "fill_unknown": True,
                        "order_ids": buy.order_ids,
                        "step_ids": [s.get("id") for s in buy.steps if s.get("id")],
                        "max_price_per_token": str(max_buy_price),
                    }
                )
                return result

            slippage = calculate_percentage(actual_price - lowest, lowest)
            if actual_price > max_buy_price:
                logger.warning(
                    f"Fill {actual_price} for {token} exceeded slippage bound {max_buy_price}"
                )

            listed = True
            listing_error = None
            details = {}
            try:
                await self.execute.execute_listing(
                    ListingRequest(
                        maker=config.wallet_address,
                        items=[ListingItem(token=token, wei_price=eth_to_wei(target_price))],
                    ),
                    runtime,
                )
            except Exception as e:
                normalized = self.observability.error_handler.handle_error(
                    e, {"operation": "execute_listing", "token": token}
                )
                listed = False
                listing_error = f"Listing failed after purchase: {normalized.message}"
                details["error_code"] = normalized.code.value

            self.ledger.commit(
                Position(
                    token_id=floor.token_id,
                    collection=collection,
                    purchase_price=actual_price,
                    list_price=target_price,
                    purchase_time=self._time.current_timestamp(),
                    gas_used=gas.total_gas,
                    listed=listed,
                )
            )
            committed = True
            self.observability.metrics.record_execution(
                collection, float(estimated_profit), float(slippage)
            )

            if listed:
                logger.info(
                    f"Swept {token}: bought {actual_price}, listed {target_price}, "
                    f"est. profit {estimated_profit:.6f} ETH"
                )
            else:
                logger.error(f"{token} bought but not listed; tracked for manual relisting")

            return SweepResult(
                status=SweepStatus.EXECUTED if listed else SweepStatus.PARTIAL,
                purchased=True,
                listed=listed,
                collection=collection,
                token_id=floor.token_id,
                purchase_price=actual_price,
                list_price=target_price,
                error=listing_error,
                gas_used=gas.total_gas,
                estimated_profit=estimated_profit,
                actual_slippage=slippage,
                market_trend=trend,
                collection_health=health,
                details=details,
            )

        except Exception as e:
            normalized = self.observability.error_handler.handle_error(
                e, {"operation": "sweep_floor", "collection": collection}
            )
            result = self._failed(collection, normalized.message, trend, health)
            result.details["error_code"] = normalized.code.value
            return result
        finally:
            if not committed:
                self.ledger.release(collection)

    async def _validate_market(
        self, collection: str, runtime: Optional[AgentRuntime]
    ) -> Tuple[MarketTrend, CollectionHealth]:
        asks, stats = await asyncio.gather(
            self.market.get_asks(
                {"collection": collection, "status": "active", "sortBy": "price"}, runtime
            ),
            self.market.get_market_stats(runtime, collection=collection),
        )
        listings = list(asks.asks)
        return assess_market_trend(stats, listings), assess_collection_health(stats, listings)

    @staticmethod
    def _market_acceptable(
        trend: MarketTrend, health: CollectionHealth, config: SweepConfig
    ) -> bool:
        return (
            trend.volume_24h >= config.min_daily_volume
            and health.unique_holders >= config.min_unique_holders
            and health.market_cap >= config.min_market_cap
            and health.is_healthy
            and trend.is_uptrend
        )

    async def _floor_snapshot(
        self, collection: str, runtime: Optional[AgentRuntime]
    ) -> Union[Rejection, Tuple[OrderListing, Decimal, Decimal]]:
        page = await self.market.get_asks(
            {
                "collection": collection,
                "sortBy": "price",
                "limit": FLOOR_SNAPSHOT_LIMIT,
                "status": "active",
            },
            runtime,
        )
        listings: List[OrderListing] = list(page.asks)
        if len(listings) < 2:
            return Rejection(REASON_INSUFFICIENT_LISTINGS)

        first, second = listings[0], listings[1]
        lowest, second_lowest = first.price_value, second.price_value
        if lowest is None or second_lowest is None:
            return Rejection(REASON_INVALID_PRICE)
        if not first.token_id:
            return Rejection(REASON_MISSING_TOKEN)
        return first, lowest, second_lowest

    @staticmethod
    def _check_opportunity(
        lowest: Decimal, second_lowest: Decimal, config: SweepConfig
    ) -> Union[Rejection, Tuple[GasEstimate, Decimal, Decimal]]:
        gap_percent = calculate_percentage(second_lowest - lowest, lowest)
        if gap_percent < _dec(config.min_price_gap_percent):
            return Rejection(REASON_GAP_TOO_SMALL)
        if lowest > _dec(config.max_purchase_price):
            return Rejection(REASON_PRICE_TOO_HIGH)

        gas = estimate_gas_costs(config.max_gas_price)
        target_price = lowest * (1 + _dec(config.target_profit_percent) / 100)
        estimated_profit = target_price - lowest - gas.total_gas_in_eth
        if estimated_profit < _dec(config.min_profit_after_gas):
            return Rejection(REASON_INSUFFICIENT_PROFIT, estimated_profit)
        return gas, target_price, estimated_profit

    def _rejected(
        self,
        collection: str,
        rejection: Rejection,
        trend: Optional[MarketTrend] = None,
        health: Optional[CollectionHealth] = None,
    ) -> SweepResult:
        logger.info(f"Sweep on {collection} rejected: {rejection.reason}")
        return SweepResult(
            status=SweepStatus.REJECTED,
            collection=collection,
            error=rejection.reason,
            estimated_profit=rejection.estimated_profit,
            market_trend=trend,
            collection_health=health,
        )

    @staticmethod
    def _failed(
        collection: str,
        message: str,
        trend: Optional[MarketTrend] = None,
        health: Optional[CollectionHealth] = None,
    ) -> SweepResult:
        return SweepResult(
            status=SweepStatus.FAILED,
            collection=collection,
            error=message,
            market_trend=trend,
            collection_health=health,
        )

    def close_position(self, collection: str, token_id: str) -> Optional[Position]:
        """Stop tracking a position, typically after its listing sold."""
        position = self.ledger.close_position(collection, token_id)
        if position is not None:
            logger.info(f"Closed position {collection}:{token_id}")
            self.observability.metrics.update_open_positions(
                collection, len(self.ledger.get_positions(collection))
            )
        return position

    def get_positions(self, collection: Optional[str] = None) -> List[Position]:
        return self.ledger.get_positions(collection)

    @staticmethod
    def estimate_gas_costs(gas_price_gwei: Union[float, Decimal]) -> GasEstimate:
        return estimate_gas_costs(gas_price_gwei)
