"""Collaborators the quoting engine depends on but does not implement."""

from typing import Callable, List, Optional, Protocol

from pmm.market_maker.types import MakerOrder, OrderBookSnapshot, OrderPlacement, PriceUpdate, Venue

PriceCallback = Callable[[PriceUpdate], None]
Unsubscribe = Callable[[], None]


class ExecutionService(Protocol):
    """Places and cancels orders on a venue.

    Each call is a single attempt; retries and timeouts belong to the
    implementation.
    """

    async def cancel_order(self, venue: Venue, order_id: str) -> bool:
        ...

    async def cancel_orders_batch(self, venue: Venue, order_ids: List[str]) -> bool:
        ...

    async def maker_buy(self, order: MakerOrder) -> OrderPlacement:
        ...

    async def maker_sell(self, order: MakerOrder) -> OrderPlacement:
        ...

    async def place_orders_batch(self, orders: List[MakerOrder]) -> List[OrderPlacement]:
        """Place all ``orders``; one result per order, in submission order."""
        ...


class PriceFeed(Protocol):
    """Order book snapshots and pushed price updates."""

    def subscribe_price(self, venue: Venue, market_id: str, callback: PriceCallback) -> Unsubscribe:
        ...

    async def get_orderbook(self, venue: Venue, market_id: str) -> Optional[OrderBookSnapshot]:
        ...
