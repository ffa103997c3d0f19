"""
Position ledger for the floor sweep engine.

Positions are grouped per collection in purchase order. A sweep reserves
a slot when it passes the limit gate and either commits a position into
it or releases it, so concurrent sweeps on different collections cannot
overshoot the total cap between the check and the append.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from .interfaces import SystemTimeProvider, TimeProvider
from .trading_types import Position

logger = logging.getLogger(__name__)


class PositionLedger:
    def __init__(self, time_provider: Optional[TimeProvider] = None):
        self._time = time_provider or SystemTimeProvider()
        self._positions: Dict[str, List[Position]] = {}
        self._reserved: Dict[str, int] = defaultdict(int)

    def cleanup_stale(self, max_holding_time: float) -> List[Position]:
        """Evict positions held for max_holding_time seconds or longer."""
        now = self._time.current_timestamp()
        evicted: List[Position] = []
        for collection in list(self._positions):
            active = []
            for position in self._positions[collection]:
                if position.age(now) >= max_holding_time:
                    evicted.append(position)
                else:
                    active.append(position)
            if active:
                self._positions[collection] = active
            else:
                del self._positions[collection]

        for position in evicted:
            logger.info(
                f"Evicted stale position {position.collection}:{position.token_id} "
                f"after {position.age(now):.0f}s"
            )
        return evicted

    def count(self, collection: str) -> int:
        """Open positions plus in-flight reservations for one collection."""
        return len(self._positions.get(collection, ())) + self._reserved.get(collection, 0)

    def total_positions(self) -> int:
        held = sum(len(p) for p in self._positions.values())
        return held + sum(self._reserved.values())

    def try_reserve(self, collection: str, per_collection: int, total: int) -> bool:
        if self.count(collection) >= per_collection:
            return False
        if self.total_positions() >= total:
            return False
        self._reserved[collection] += 1
        return True

    def release(self, collection: str) -> None:
        if self._reserved.get(collection, 0) > 0:
            self._reserved[collection] -= 1
            if not self._reserved[collection]:
                del self._reserved[collection]

    def commit(self, position: Position) -> None:
        """Turn a reservation into a recorded position."""
        self.release(position.collection)
        self._positions.setdefault(position.collection, []).append(position)

    def close_position(self, collection: str, token_id: str) -> Optional[Position]:
        """Remove a position explicitly, e.g. once its listing has sold."""
        positions = self._positions.get(collection, [])
        for index, position in enumerate(positions):
            if position.token_id == token_id:
                del positions[index]
                if not positions:
                    del self._positions[collection]
                return position
        return None

    def get_positions(self, collection: Optional[str] = None) -> List[Position]:
        if collection is not None:
            return list(self._positions.get(collection, ()))
        return [p for positions in self._positions.values() for p in positions]
