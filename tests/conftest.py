"""Shared fixtures for the floor arbitrage test suite."""

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from prometheus_client import CollectorRegistry

from floor_arbitrage.config_schema import SweepConfig
from floor_arbitrage.interfaces import DeterministicTimeProvider
from floor_arbitrage.metrics import ServiceMetrics
from floor_arbitrage.monitoring import Observability

WALLET = "0x" + "ab" * 20
COLLECTION = "0x" + "cd" * 20


@pytest.fixture
def time_provider():
    return DeterministicTimeProvider()


@pytest.fixture
def registry():
    """Fresh registry per test so metric values never leak between tests"""
    return CollectorRegistry()


@pytest.fixture
def observability(registry, time_provider):
    return Observability(
        metrics=ServiceMetrics(registry, time_provider), time_provider=time_provider
    )


@pytest.fixture
def make_ask():
    def _make(token_id: Optional[str], price: Any, order_id: Optional[str] = None):
        ask: Dict[str, Any] = {
            "id": order_id or f"order-{token_id}",
            "maker": "0x" + "11" * 20,
            "status": "active",
            "contract": COLLECTION,
            "price": {
                "currency": {"contract": "0x" + "00" * 20, "symbol": "ETH", "decimals": 18},
                "amount": {"decimal": price, "native": price},
            },
        }
        if token_id is not None:
            ask["criteria"] = {"kind": "token", "data": {"token": {"tokenId": token_id}}}
        return ask

    return _make


@pytest.fixture
def make_stats():
    def _make(**overrides):
        stats = {
            "totalVolume": 5000,
            "totalSales": 300,
            "totalListings": 40,
            "floorPrice": 1.0,
            "averagePrice": 1.1,
            "volume24h": 120,
            "volumeChange24h": 5,
            "volumeChange7d": 10,
            "volumeChange30d": 2,
            "ownerCount": 800,
        }
        stats.update(overrides)
        return {"stats": stats}

    return _make


@pytest.fixture
def sweep_config():
    return SweepConfig(
        min_price_gap_percent=10,
        max_purchase_price=5,
        wallet_address=WALLET,
        target_profit_percent=20,
        max_slippage_bps=100,
        min_profit_after_gas=0.01,
        max_gas_price=50,
        max_positions_per_collection=2,
        max_total_positions=5,
        min_market_cap=1000,
        min_unique_holders=100,
        min_daily_volume=10,
        max_holding_time=86400,
    )


class FakeReservoir:
    """
    Scripted stand-in for the marketplace API.

    Responses are queued per (method, path); the last queued response is
    repeated once the queue is down to one entry.
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._responses: Dict[Tuple[str, str], List[Tuple[int, Any, Dict[str, str]]]] = {}

    def respond(
        self,
        path: str,
        body: Any = None,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
        method: str = "GET",
    ):
        self._responses.setdefault((method, path), []).append(
            (status, body if body is not None else {}, headers or {})
        )

    def calls(self, path: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["path"] == path]

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": request.query,
                "headers": request.headers,
                "json": body,
            }
        )
        queue = self._responses.get((request.method, request.path))
        if not queue:
            return web.json_response({"message": "Not found"}, status=404)
        status, payload, headers = queue[0] if len(queue) == 1 else queue.pop(0)
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return web.Response(
            status=status, text=text, headers=headers, content_type="application/json"
        )


@pytest.fixture
def reservoir():
    return FakeReservoir()


@pytest_asyncio.fixture
async def reservoir_server(reservoir):
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", reservoir.handle)
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def base_url(reservoir_server):
    return str(reservoir_server.make_url("")).rstrip("/")
