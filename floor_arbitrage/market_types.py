"""
Typed snapshots of marketplace API responses.

Each from_api constructor accepts the raw JSON mapping returned by the
API and tolerates missing optional fields; nothing here performs I/O.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .constants import NATIVE_CURRENCY_ADDRESS, NATIVE_CURRENCY_SYMBOL
from .utils import get_nested_value, to_decimal


def _float(value: Any, default: float = 0.0) -> float:
    number = to_decimal(value)
    return float(number) if number is not None else default


def _int(value: Any, default: int = 0) -> int:
    number = to_decimal(value)
    return int(number) if number is not None else default


@dataclass(frozen=True)
class Currency:
    contract: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: int = 18

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["Currency"]:
        if not isinstance(data, dict):
            return None
        return cls(
            contract=data.get("contract"),
            name=data.get("name"),
            symbol=data.get("symbol"),
            decimals=_int(data.get("decimals"), 18),
        )

    @property
    def is_native(self) -> bool:
        if self.contract:
            return self.contract.lower() == NATIVE_CURRENCY_ADDRESS
        return (self.symbol or "").upper() == NATIVE_CURRENCY_SYMBOL


@dataclass(frozen=True)
class Amount:
    """The same amount expressed in raw units, decimal, USD and native currency."""

    raw: Optional[str] = None
    decimal: Optional[Decimal] = None
    usd: Optional[Decimal] = None
    native: Optional[Decimal] = None

    @classmethod
    def from_api(cls, data: Any) -> "Amount":
        if isinstance(data, dict):
            return cls(
                raw=None if data.get("raw") is None else str(data["raw"]),
                decimal=to_decimal(data.get("decimal")),
                usd=to_decimal(data.get("usd")),
                native=to_decimal(data.get("native")),
            )
        # Some endpoints collapse the amount to a bare number
        return cls(decimal=to_decimal(data), native=to_decimal(data))

    @property
    def value(self) -> Optional[Decimal]:
        return self.decimal if self.decimal is not None else self.native


@dataclass(frozen=True)
class Price:
    amount: Amount
    currency: Optional[Currency] = None
    net_amount: Optional[Amount] = None

    @classmethod
    def from_api(cls, data: Any) -> Optional["Price"]:
        if not isinstance(data, dict) or data.get("amount") is None:
            return None
        return cls(
            amount=Amount.from_api(data.get("amount")),
            currency=Currency.from_api(data.get("currency")),
            net_amount=(
                Amount.from_api(data["netAmount"]) if data.get("netAmount") else None
            ),
        )

    @property
    def native_value(self) -> Optional[Decimal]:
        """Amount in the native currency; decimal counts only for native-currency orders."""
        if self.amount.native is not None:
            return self.amount.native
        if self.currency is None or self.currency.is_native:
            return self.amount.decimal
        return None


@dataclass(frozen=True)
class Source:
    id: Optional[str] = None
    domain: Optional[str] = None
    name: Optional[str] = None
    icon: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> Optional["Source"]:
        if not isinstance(data, dict):
            return None
        return cls(
            id=data.get("id"),
            domain=data.get("domain"),
            name=data.get("name"),
            icon=data.get("icon"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class OrderListing:
    """An active ask; valid only for the decision cycle that fetched it."""

    id: Optional[str]
    token_id: Optional[str]
    price: Optional[Price]
    maker: Optional[str] = None
    valid_from: Optional[int] = None
    valid_until: Optional[int] = None
    source: Optional[Source] = None
    contract: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderListing":
        token_id = get_nested_value(data, "criteria.data.token.tokenId")
        if token_id is None:
            token_id = get_nested_value(data, "token.tokenId")
        return cls(
            id=data.get("id"),
            token_id=None if token_id in (None, "") else str(token_id),
            price=Price.from_api(data.get("price")),
            maker=data.get("maker"),
            valid_from=data.get("validFrom"),
            valid_until=data.get("validUntil"),
            source=Source.from_api(data.get("source")),
            contract=data.get("contract"),
            status=data.get("status"),
        )

    @property
    def price_value(self) -> Optional[Decimal]:
        """Listing price in ETH, or None when not priced."""
        if self.price is None:
            return None
        value = self.price.native_value
        if value is None or value <= 0:
            return None
        return value


@dataclass(frozen=True)
class OrderBid:
    id: Optional[str]
    price: Optional[Price]
    maker: Optional[str] = None
    token_set_id: Optional[str] = None
    valid_until: Optional[int] = None
    source: Optional[Source] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "OrderBid":
        return cls(
            id=data.get("id"),
            price=Price.from_api(data.get("price")),
            maker=data.get("maker"),
            token_set_id=data.get("tokenSetId"),
            valid_until=data.get("validUntil"),
            source=Source.from_api(data.get("source")),
        )


@dataclass(frozen=True)
class AsksPage:
    asks: Tuple[OrderListing, ...] = ()
    continuation: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AsksPage":
        raw = data.get("asks") or data.get("orders") or []
        return cls(
            asks=tuple(OrderListing.from_api(a) for a in raw if isinstance(a, dict)),
            continuation=data.get("continuation"),
        )


@dataclass(frozen=True)
class BidsPage:
    bids: Tuple[OrderBid, ...] = ()
    continuation: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BidsPage":
        raw = data.get("orders") or data.get("bids") or []
        return cls(
            bids=tuple(OrderBid.from_api(b) for b in raw if isinstance(b, dict)),
            continuation=data.get("continuation"),
        )


@dataclass(frozen=True)
class MarketStats:
    total_volume: float = 0.0
    total_sales: int = 0
    total_listings: int = 0
    floor_price: float = 0.0
    average_price: float = 0.0
    volume_24h: float = 0.0
    volume_change_24h: float = 0.0
    volume_change_7d: float = 0.0
    volume_change_30d: float = 0.0
    unique_holders: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MarketStats":
        stats = data.get("stats") if isinstance(data.get("stats"), dict) else data
        floor = stats.get("floorPrice")
        if isinstance(floor, dict):
            amount = Amount.from_api(floor.get("amount", floor))
            floor = amount.native if amount.native is not None else amount.decimal
        return cls(
            total_volume=_float(stats.get("totalVolume")),
            total_sales=_int(stats.get("totalSales")),
            total_listings=_int(stats.get("totalListings")),
            floor_price=_float(floor),
            average_price=_float(stats.get("averagePrice")),
            volume_24h=_float(stats.get("volume24h", stats.get("volume1d"))),
            volume_change_24h=_float(stats.get("volumeChange24h")),
            volume_change_7d=_float(stats.get("volumeChange7d")),
            volume_change_30d=_float(stats.get("volumeChange30d")),
            unique_holders=_int(stats.get("uniqueHolders", stats.get("ownerCount"))),
        )


@dataclass(frozen=True)
class TopTrader:
    address: str
    total_volume: float = 0.0
    total_sales: int = 0
    total_buys: int = 0
    total_sells: int = 0
    profit: float = 0.0
    profit_usd: float = 0.0
    rank: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TopTrader":
        return cls(
            address=data.get("address", ""),
            total_volume=_float(data.get("totalVolume")),
            total_sales=_int(data.get("totalSales")),
            total_buys=_int(data.get("totalBuys")),
            total_sells=_int(data.get("totalSells")),
            profit=_float(data.get("profit")),
            profit_usd=_float(data.get("profitUsd")),
            rank=_int(data.get("rank")),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Response of an execute endpoint: signing steps plus the fill path."""

    steps: Tuple[Dict[str, Any], ...] = ()
    path: Tuple[Dict[str, Any], ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ExecutionResult":
        steps = data.get("steps") or []
        path = data.get("path") or []
        return cls(
            steps=tuple(s for s in steps if isinstance(s, dict)),
            path=tuple(p for p in path if isinstance(p, dict)),
            raw=data,
        )

    def filled_price(self) -> Optional[Decimal]:
        """Gross quote of the first fill, or None when the path has none."""
        if not self.path:
            return None
        return to_decimal(get_nested_value(self.path[0], "quote.gross.amount"))

    @property
    def order_ids(self) -> List[str]:
        return [p["orderId"] for p in self.path if p.get("orderId")]
