"""
Request types for order execution calls.

Each request knows how to validate itself and render the JSON body the
execute endpoints expect. Field names are snake_case here and camelCase
on the wire.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from .constants import DEFAULT_ORDER_KIND, DEFAULT_ORDERBOOK, DEFAULT_SOURCE
from .exceptions import ValidationError
from .utils import is_valid_address

_ORDER_KINDS = {"seaport", "seaport-v1.5", "looks-rare", "x2y2", "blur"}
_ORDERBOOKS = {"reservoir", "opensea", "looks-rare", "x2y2", "blur"}


def _require_address(field_name: str, value: Optional[str], label: str) -> None:
    if not value:
        raise ValidationError(field_name, f"{label} address is required")
    if not is_valid_address(value):
        raise ValidationError(field_name, f"Invalid {label.lower()} address: {value}")


def _require_items(items: Sequence[Any]) -> None:
    if not items:
        raise ValidationError("items", "At least one item is required")


def _drop_none(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if v is not None}


@dataclass(frozen=True)
class OrderItem:
    """A token (contract:tokenId) or explicit order ids to fill."""

    token: Optional[str] = None
    quantity: Optional[int] = None
    fill_type: Optional[str] = None
    order_ids: Optional[List[str]] = None

    def validate(self, index: int) -> None:
        if not self.token and not self.order_ids:
            raise ValidationError(
                f"items[{index}].token", f"Token is required for item at index {index}"
            )
        if self.token is not None and ":" not in self.token:
            raise ValidationError(
                f"items[{index}].token",
                f"Token must be formatted as contract:tokenId at index {index}",
            )
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError(
                f"items[{index}].quantity", f"Invalid quantity for item at index {index}"
            )

    def to_body(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "token": self.token,
                "quantity": self.quantity,
                "fillType": self.fill_type,
                "orderIds": list(self.order_ids) if self.order_ids else None,
            }
        )


@dataclass(frozen=True)
class OrderRequest:
    """Body for buy, sell (accept bid) and bid execution."""

    items: Sequence[OrderItem]
    taker: str
    source: str = DEFAULT_SOURCE
    partial: bool = False
    exclude_eoa: bool = True
    skip_balance_check: bool = False
    currency: Optional[str] = None
    max_price_per_token: Optional[Decimal] = None
    normalize_royalties: Optional[bool] = None
    only_path: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        _require_items(self.items)
        _require_address("taker", self.taker, "Taker")
        for index, item in enumerate(self.items):
            item.validate(index)
        if self.max_price_per_token is not None and self.max_price_per_token <= 0:
            raise ValidationError("max_price_per_token", "Maximum price must be positive")

    def to_body(self, include_eoa: bool = True) -> Dict[str, Any]:
        body = _drop_none(
            {
                "items": [item.to_body() for item in self.items],
                "taker": self.taker,
                "source": self.source,
                "partial": self.partial,
                "excludeEOA": self.exclude_eoa if include_eoa else None,
                "skipBalanceCheck": self.skip_balance_check,
                "currency": self.currency,
                "maxPricePerToken": (
                    str(self.max_price_per_token)
                    if self.max_price_per_token is not None
                    else None
                ),
                "normalizeRoyalties": self.normalize_royalties,
                "onlyPath": self.only_path,
            }
        )
        body.update(self.extra)
        return body


@dataclass(frozen=True)
class ListingItem:
    token: str
    wei_price: str
    quantity: Optional[int] = None
    order_kind: Optional[str] = None
    orderbook: Optional[str] = None

    def validate(self, index: int) -> None:
        if not self.token:
            raise ValidationError(
                f"items[{index}].token", f"Token is required for item at index {index}"
            )
        if not self.wei_price or not str(self.wei_price).isdigit() or int(self.wei_price) <= 0:
            raise ValidationError(
                f"items[{index}].wei_price", f"Price is required for item at index {index}"
            )
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError(
                f"items[{index}].quantity", f"Invalid quantity for item at index {index}"
            )
        if self.order_kind is not None and self.order_kind not in _ORDER_KINDS:
            raise ValidationError(
                f"items[{index}].order_kind", f"Unsupported order kind: {self.order_kind}"
            )
        if self.orderbook is not None and self.orderbook not in _ORDERBOOKS:
            raise ValidationError(
                f"items[{index}].orderbook", f"Unsupported orderbook: {self.orderbook}"
            )

    def to_body(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "token": self.token,
                "weiPrice": str(self.wei_price),
                "quantity": self.quantity,
                "orderKind": self.order_kind,
                "orderbook": self.orderbook,
            }
        )


@dataclass(frozen=True)
class ListingRequest:
    maker: str
    items: Sequence[ListingItem]
    source: str = DEFAULT_SOURCE
    order_kind: str = DEFAULT_ORDER_KIND
    orderbook: str = DEFAULT_ORDERBOOK
    automated_royalties: bool = True
    currency: Optional[str] = None
    expiration_time: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        _require_items(self.items)
        _require_address("maker", self.maker, "Maker")
        for index, item in enumerate(self.items):
            item.validate(index)

    def to_body(self) -> Dict[str, Any]:
        items = []
        for item in self.items:
            rendered = item.to_body()
            rendered.setdefault("orderKind", self.order_kind)
            rendered.setdefault("orderbook", self.orderbook)
            if self.currency:
                rendered.setdefault("currency", self.currency)
            if self.expiration_time is not None:
                rendered.setdefault("expirationTime", str(self.expiration_time))
            items.append(rendered)
        body = {
            "maker": self.maker,
            "source": self.source,
            "params": items,
            "automatedRoyalties": self.automated_royalties,
        }
        body.update(self.extra)
        return body


@dataclass(frozen=True)
class CancelRequest:
    order_ids: Sequence[str]
    maker: str
    source: str = DEFAULT_SOURCE
    only_path: Optional[bool] = None

    def validate(self) -> None:
        if not self.order_ids:
            raise ValidationError("order_ids", "At least one order ID is required")
        _require_address("maker", self.maker, "Maker")

    def to_body(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "orderIds": list(self.order_ids),
                "maker": self.maker,
                "source": self.source,
                "onlyPath": self.only_path,
            }
        )


@dataclass(frozen=True)
class MintRequest:
    collection: str
    minter: str
    quantity: int = 1
    token_id: Optional[str] = None
    price: Optional[str] = None
    merkle_proof: Optional[List[str]] = None
    source: str = DEFAULT_SOURCE
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.collection:
            raise ValidationError("collection", "Collection address is required")
        _require_address("minter", self.minter, "Minter")
        if self.quantity < 1:
            raise ValidationError("quantity", "Quantity must be at least 1")

    def to_body(self) -> Dict[str, Any]:
        token = f"{self.collection}:{self.token_id}" if self.token_id else None
        item = _drop_none(
            {
                "collection": None if token else self.collection,
                "token": token,
                "quantity": self.quantity,
                "price": self.price,
                "merkleProof": list(self.merkle_proof) if self.merkle_proof else None,
            }
        )
        body = {"items": [item], "taker": self.minter, "source": self.source}
        body.update(self.extra)
        return body
