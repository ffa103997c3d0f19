"""Tests for ExecuteService request bodies and order error handling."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from floor_arbitrage.config_schema import ClientConfig
from floor_arbitrage.exceptions import OrderError, ValidationError
from floor_arbitrage.execute import ExecuteService
from floor_arbitrage.execution_types import (
    CancelRequest,
    ListingItem,
    ListingRequest,
    MintRequest,
    OrderItem,
    OrderRequest,
)

WALLET = "0x" + "ab" * 20
TOKEN = "0x" + "cd" * 20 + ":42"


@pytest.fixture
def client():
    mock = Mock()
    mock.post = AsyncMock(
        return_value={
            "steps": [{"id": "sale", "kind": "transaction", "items": []}],
            "path": [{"orderId": "order-1", "quote": {"gross": {"amount": 1.005}}}],
        }
    )
    mock.request = AsyncMock()
    mock.config = ClientConfig(batch_size=2)
    return mock


@pytest.fixture
def service(client):
    return ExecuteService(client)


def posted(client):
    endpoint, body, _runtime = client.post.call_args.args
    return endpoint, body


@pytest.mark.asyncio
async def test_execute_buy(service, client):
    request = OrderRequest(
        items=[OrderItem(token=TOKEN, quantity=1)],
        taker=WALLET,
        max_price_per_token=Decimal("1.01"),
    )

    result = await service.execute_buy(request)

    endpoint, body = posted(client)
    assert endpoint == "/execute/buy/v7"
    assert body["items"] == [{"token": TOKEN, "quantity": 1}]
    assert body["taker"] == WALLET
    assert body["excludeEOA"] is True
    assert body["partial"] is False
    assert body["maxPricePerToken"] == "1.01"
    assert result.filled_price() == Decimal("1.005")
    assert result.order_ids == ["order-1"]


@pytest.mark.asyncio
async def test_execute_buy_requires_items(service, client):
    with pytest.raises(ValidationError, match="At least one item is required"):
        await service.execute_buy(OrderRequest(items=[], taker=WALLET))
    client.post.assert_not_called()


@pytest.mark.asyncio
async def test_execute_buy_requires_valid_taker(service, client):
    with pytest.raises(ValidationError, match="Taker address is required"):
        await service.execute_buy(OrderRequest(items=[OrderItem(token=TOKEN)], taker=""))
    with pytest.raises(ValidationError, match="Invalid taker address"):
        await service.execute_buy(OrderRequest(items=[OrderItem(token=TOKEN)], taker="0x123"))
    client.post.assert_not_called()


@pytest.mark.asyncio
async def test_execute_buy_rejects_malformed_token(service):
    with pytest.raises(ValidationError, match="contract:tokenId"):
        await service.execute_buy(OrderRequest(items=[OrderItem(token="42")], taker=WALLET))


@pytest.mark.asyncio
async def test_execute_buy_by_order_ids(service, client):
    await service.execute_buy(
        OrderRequest(items=[OrderItem(order_ids=["order-9"])], taker=WALLET)
    )
    _, body = posted(client)
    assert body["items"] == [{"orderIds": ["order-9"]}]


@pytest.mark.asyncio
async def test_execute_sell_requires_tokens(service, client):
    with pytest.raises(ValidationError, match="Every sell item needs a token"):
        await service.execute_sell(
            OrderRequest(items=[OrderItem(order_ids=["bid-1"])], taker=WALLET)
        )

    await service.execute_sell(OrderRequest(items=[OrderItem(token=TOKEN)], taker=WALLET))
    assert posted(client)[0] == "/execute/sell/v7"


@pytest.mark.asyncio
async def test_execute_bid_omits_exclude_eoa(service, client):
    await service.execute_bid(OrderRequest(items=[OrderItem(token=TOKEN)], taker=WALLET))
    endpoint, body = posted(client)
    assert endpoint == "/execute/bid/v7"
    assert "excludeEOA" not in body


@pytest.mark.asyncio
async def test_execute_listing(service, client):
    request = ListingRequest(
        maker=WALLET,
        items=[ListingItem(token=TOKEN, wei_price="1200000000000000000")],
        expiration_time=1700000000,
    )

    await service.execute_listing(request)

    endpoint, body = posted(client)
    assert endpoint == "/execute/list/v5"
    assert body["maker"] == WALLET
    assert body["automatedRoyalties"] is True
    assert body["params"] == [
        {
            "token": TOKEN,
            "weiPrice": "1200000000000000000",
            "orderKind": "seaport",
            "orderbook": "reservoir",
            "expirationTime": "1700000000",
        }
    ]


@pytest.mark.asyncio
async def test_execute_listing_validates_price(service, client):
    with pytest.raises(ValidationError, match="Price is required"):
        await service.execute_listing(
            ListingRequest(maker=WALLET, items=[ListingItem(token=TOKEN, wei_price="1.5")])
        )
    client.post.assert_not_called()


@pytest.mark.asyncio
async def test_execute_cancel(service, client):
    await service.execute_cancel(CancelRequest(order_ids=["order-1"], maker=WALLET))
    endpoint, body = posted(client)
    assert endpoint == "/execute/cancel/v3"
    assert body["orderIds"] == ["order-1"]


@pytest.mark.asyncio
async def test_execute_mint(service, client):
    await service.execute_mint(MintRequest(collection="0xabc", minter=WALLET, quantity=2))
    endpoint, body = posted(client)
    assert endpoint == "/execute/mint/v1"
    assert body["taker"] == WALLET
    assert body["items"] == [{"collection": "0xabc", "quantity": 2}]


@pytest.mark.asyncio
async def test_order_errors_raise(service, client):
    client.post.return_value = {
        "errors": [{"message": "Order is not fillable", "orderId": "order-1"}],
        "steps": [],
    }

    with pytest.raises(OrderError) as exc_info:
        await service.execute_buy(OrderRequest(items=[OrderItem(token=TOKEN)], taker=WALLET))

    assert exc_info.value.order_id == "order-1"
    assert exc_info.value.message == "Order is not fillable"


@pytest.mark.asyncio
async def test_check_cross_posting_status(service, client):
    client.request.return_value = {
        "orders": [{"id": 1, "status": "posted"}, "junk"],
    }

    orders = await service.check_cross_posting_status(["a", "b"])

    assert orders == [{"id": 1, "status": "posted"}]
    args, kwargs = client.request.call_args
    assert args[0] == "/cross-posting-orders/v1"
    assert args[1] == {"ids": ["a", "b"]}
    assert kwargs["use_cache"] is False


@pytest.mark.asyncio
async def test_check_cross_posting_status_requires_ids(service):
    with pytest.raises(ValidationError):
        await service.check_cross_posting_status([])


@pytest.mark.asyncio
async def test_check_cross_posting_status_batches_ids(service, client):
    client.request.side_effect = [
        {"orders": [{"id": "a"}, {"id": "b"}]},
        {"orders": [{"id": "c"}]},
    ]

    orders = await service.check_cross_posting_status(["a", "b", "c"])

    assert [o["id"] for o in orders] == ["a", "b", "c"]
    batches = [c.args[1]["ids"] for c in client.request.call_args_list]
    assert batches == [["a", "b"], ["c"]]
