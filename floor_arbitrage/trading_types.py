"""Data types for the floor sweep engine."""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from .constants import SweepStatus


@dataclass(frozen=True)
class Position:
    """A token bought by a sweep and relisted (or awaiting relisting)."""

    token_id: str
    collection: str
    purchase_price: Decimal
    list_price: Decimal
    purchase_time: float
    gas_used: int
    listed: bool = True

    def age(self, now: float) -> float:
        return now - self.purchase_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "collection": self.collection,
            "purchase_price": float(self.purchase_price),
            "list_price": float(self.list_price),
            "purchase_time": self.purchase_time,
            "gas_used": self.gas_used,
            "listed": self.listed,
        }


@dataclass(frozen=True)
class MarketTrend:
    volume_24h: float
    volume_change_24h: float
    price_change_24h: float
    sales_count_24h: int
    average_listing_price: float
    is_uptrend: bool


@dataclass(frozen=True)
class CollectionHealth:
    unique_holders: int
    floor_price: float
    market_cap: float
    is_healthy: bool


@dataclass(frozen=True)
class GasEstimate:
    buy_gas: int
    list_gas: int
    total_gas_in_eth: Decimal

    @property
    def total_gas(self) -> int:
        return self.buy_gas + self.list_gas


@dataclass(frozen=True)
class Rejection:
    """A gate's refusal; terminal for the sweep but not an error."""

    reason: str
    estimated_profit: Decimal = Decimal("0")


@dataclass
class SweepResult:
    """
    Outcome of one sweep_floor call.

    Rejected and failed sweeps carry the reason in `error` with zeroed
    financial fields; the trend and health snapshots are attached whenever
    the market gate ran.
    """

    status: SweepStatus
    purchased: bool = False
    listed: bool = False
    collection: Optional[str] = None
    token_id: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    list_price: Optional[Decimal] = None
    error: Optional[str] = None
    gas_used: int = 0
    estimated_profit: Decimal = Decimal("0")
    actual_slippage: Optional[Decimal] = None
    market_trend: Optional[MarketTrend] = None
    collection_health: Optional[CollectionHealth] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SweepStatus.EXECUTED

    def to_dict(self) -> Dict[str, Any]:
        def num(value):
            return None if value is None else float(value)

        return {
            "status": self.status.value,
            "purchased": self.purchased,
            "listed": self.listed,
            "collection": self.collection,
            "token_id": self.token_id,
            "purchase_price": num(self.purchase_price),
            "list_price": num(self.list_price),
            "error": self.error,
            "gas_used": self.gas_used,
            "estimated_profit": num(self.estimated_profit),
            "actual_slippage": num(self.actual_slippage),
            "market_trend": asdict(self.market_trend) if self.market_trend else None,
            "collection_health": (
                asdict(self.collection_health) if self.collection_health else None
            ),
            "details": dict(self.details),
        }
