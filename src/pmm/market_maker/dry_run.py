"""Paper execution and a static price feed for dry runs."""

import itertools
from typing import Callable, Dict, List, Optional, Set

from pmm.market_maker.interfaces import PriceCallback, Unsubscribe
from pmm.market_maker.types import (
    MakerOrder,
    OrderBookLevel,
    OrderBookSnapshot,
    OrderPlacement,
    PriceUpdate,
    Venue,
)
from pmm.utils.logging import get_logger

log = get_logger(__name__)


class PaperExecutionService:
    """Accepts orders without touching a venue.

    ``reject`` decides per order whether placement fails, which makes the
    service usable as a deterministic test double.
    """

    def __init__(self, reject: Optional[Callable[[MakerOrder], bool]] = None):
        self.reject = reject or (lambda order: False)
        self.open_orders: Dict[str, MakerOrder] = {}
        self.cancelled: List[str] = []
        self.calls: List[str] = []
        self._ids = itertools.count(1)

    def _place(self, order: MakerOrder) -> OrderPlacement:
        if self.reject(order):
            log.info("Dry run: rejecting order", side=order.side.value, price=order.price, size=order.size)
            return OrderPlacement(success=False, error="rejected")
        order_id = f"dry_{next(self._ids)}"
        self.open_orders[order_id] = order
        log.info(
            "Dry run: placing order",
            order_id=order_id,
            side=order.side.value,
            price=order.price,
            size=order.size,
        )
        return OrderPlacement(success=True, order_id=order_id)

    def _cancel(self, order_id: str) -> bool:
        if self.open_orders.pop(order_id, None) is None:
            return False
        self.cancelled.append(order_id)
        return True

    async def cancel_order(self, venue: Venue, order_id: str) -> bool:
        self.calls.append("cancel_order")
        return self._cancel(order_id)

    async def cancel_orders_batch(self, venue: Venue, order_ids: List[str]) -> bool:
        self.calls.append("cancel_orders_batch")
        results = [self._cancel(order_id) for order_id in order_ids]
        return all(results)

    async def maker_buy(self, order: MakerOrder) -> OrderPlacement:
        self.calls.append("maker_buy")
        return self._place(order)

    async def maker_sell(self, order: MakerOrder) -> OrderPlacement:
        self.calls.append("maker_sell")
        return self._place(order)

    async def place_orders_batch(self, orders: List[MakerOrder]) -> List[OrderPlacement]:
        self.calls.append("place_orders_batch")
        return [self._place(order) for order in orders]


def make_book(
    best_bid: float,
    best_ask: float,
    bid_size: float = 100.0,
    ask_size: float = 100.0,
    depth: int = 1,
    tick: float = 0.01,
) -> OrderBookSnapshot:
    """Build a symmetric-depth book stepping one tick away per level."""
    bids = [
        OrderBookLevel(price=round(best_bid - i * tick, 4), size=bid_size)
        for i in range(depth)
    ]
    asks = [
        OrderBookLevel(price=round(best_ask + i * tick, 4), size=ask_size)
        for i in range(depth)
    ]
    return OrderBookSnapshot(bids=bids, asks=asks, mid_price=(best_bid + best_ask) / 2)


class StaticPriceFeed:
    """Serves whatever book it was last given and fans out price pushes."""

    def __init__(self, book: Optional[OrderBookSnapshot] = None):
        self.book = book
        self._subscribers: Dict[str, Set[PriceCallback]] = {}

    def set_book(self, book: Optional[OrderBookSnapshot]) -> None:
        self.book = book

    def push_price(self, market_id: str, price: float) -> None:
        update = PriceUpdate(market_id=market_id, price=price)
        for callback in list(self._subscribers.get(market_id, ())):
            callback(update)

    def subscriber_count(self, market_id: str) -> int:
        return len(self._subscribers.get(market_id, ()))

    def subscribe_price(self, venue: Venue, market_id: str, callback: PriceCallback) -> Unsubscribe:
        self._subscribers.setdefault(market_id, set()).add(callback)

        def unsubscribe() -> None:
            self._subscribers.get(market_id, set()).discard(callback)

        return unsubscribe

    async def get_orderbook(self, venue: Venue, market_id: str) -> Optional[OrderBookSnapshot]:
        return self.book
