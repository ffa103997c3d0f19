"""
Execution service: submits buy, sell, bid, list, cancel and mint orders.

Requests go out once. A failed execution is never retried here because a
second buy can double-spend; whether to try again is the caller's call.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .client import ResilientClient
from .constants import (
    CROSS_POSTING_ENDPOINT,
    EXECUTE_BID_ENDPOINT,
    EXECUTE_BUY_ENDPOINT,
    EXECUTE_CANCEL_ENDPOINT,
    EXECUTE_LIST_ENDPOINT,
    EXECUTE_MINT_ENDPOINT,
    EXECUTE_SELL_ENDPOINT,
)
from .exceptions import OrderError, ValidationError
from .execution_types import (
    CancelRequest,
    ListingRequest,
    MintRequest,
    OrderRequest,
)
from .interfaces import AgentRuntime
from .market_types import ExecutionResult

logger = logging.getLogger(__name__)


def _raise_order_errors(data: Dict[str, Any]) -> None:
    errors = data.get("errors")
    if not errors:
        return
    first = errors[0] if isinstance(errors[0], dict) else {"message": str(errors[0])}
    raise OrderError(
        first.get("message", "Order rejected"),
        order_id=first.get("orderId"),
        details={"errors": errors},
    )


class ExecuteService:
    def __init__(self, client: ResilientClient):
        self.client = client

    async def _submit(
        self,
        endpoint: str,
        body: Dict[str, Any],
        operation: str,
        runtime: Optional[AgentRuntime],
    ) -> ExecutionResult:
        logger.info(f"Submitting {operation} to {endpoint}")
        data = await self.client.post(endpoint, body, runtime, operation=operation)
        _raise_order_errors(data)
        result = ExecutionResult.from_api(data)
        logger.info(
            f"{operation} accepted: {len(result.steps)} steps, {len(result.path)} fills"
        )
        return result

    async def execute_buy(
        self, request: OrderRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        """Fill listings for the given tokens or order ids."""
        request.validate()
        return await self._submit(
            EXECUTE_BUY_ENDPOINT, request.to_body(), "execute_buy", runtime
        )

    async def execute_sell(
        self, request: OrderRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        """Accept bids on tokens the taker owns."""
        request.validate()
        if any(item.token is None for item in request.items):
            raise ValidationError("items", "Every sell item needs a token")
        return await self._submit(
            EXECUTE_SELL_ENDPOINT, request.to_body(), "execute_sell", runtime
        )

    async def execute_bid(
        self, request: OrderRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        request.validate()
        return await self._submit(
            EXECUTE_BID_ENDPOINT,
            request.to_body(include_eoa=False),
            "execute_bid",
            runtime,
        )

    async def execute_listing(
        self, request: ListingRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        request.validate()
        return await self._submit(
            EXECUTE_LIST_ENDPOINT, request.to_body(), "execute_listing", runtime
        )

    async def execute_cancel(
        self, request: CancelRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        request.validate()
        return await self._submit(
            EXECUTE_CANCEL_ENDPOINT, request.to_body(), "execute_cancel", runtime
        )

    async def execute_mint(
        self, request: MintRequest, runtime: Optional[AgentRuntime] = None
    ) -> ExecutionResult:
        request.validate()
        return await self._submit(
            EXECUTE_MINT_ENDPOINT, request.to_body(), "execute_mint", runtime
        )

    async def check_cross_posting_status(
        self, order_ids: Sequence[str], runtime: Optional[AgentRuntime] = None
    ) -> List[Dict[str, Any]]:
        """
        Status of orders cross-posted to external orderbooks.

        Ids are queried in chunks of the client's batch_size.
        """
        if not order_ids:
            raise ValidationError("order_ids", "At least one order ID is required")
        ids = list(order_ids)
        batch_size = self.client.config.batch_size
        orders: List[Dict[str, Any]] = []
        for start in range(0, len(ids), batch_size):
            data = await self.client.request(
                CROSS_POSTING_ENDPOINT,
                {"ids": ids[start : start + batch_size]},
                runtime,
                use_cache=False,
                operation="check_cross_posting_status",
            )
            orders.extend(o for o in data.get("orders") or [] if isinstance(o, dict))
        return orders
