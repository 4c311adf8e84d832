from abc import ABC, abstractmethod
from typing import List

from pmm.config import MMConfig
from pmm.market_maker.interfaces import ExecutionService
from pmm.market_maker.state import MMState
from pmm.market_maker.types import MakerOrder, OrderPlacement, Quote, QuoteLadder, Side, Signal
from pmm.utils.logging import get_logger

log = get_logger(__name__)


class OrderManager(ABC):
    """Cancels resting quotes and places new ladders for one session.

    Subclasses only decide how calls reach the venue; recording resting
    ids and emitting signals is shared so both modes behave identically.
    """

    def __init__(self, execution: ExecutionService, config: MMConfig):
        self.execution = execution
        self.config = config

    @abstractmethod
    async def _cancel(self, order_ids: List[str]) -> None:
        ...

    @abstractmethod
    async def _submit(self, orders: List[MakerOrder]) -> List[OrderPlacement]:
        """Submit ``orders`` and return one placement per order, in order."""
        ...

    async def cancel_all(self, state: MMState) -> None:
        """Cancel every resting order. Resting lists are cleared regardless of outcome."""
        order_ids = state.resting_order_ids()
        if not order_ids:
            return

        await self._cancel(order_ids)
        state.active_bids = []
        state.active_asks = []
        log.debug("Resting orders cancelled", session_id=self.config.id, count=len(order_ids))

    async def place_ladder(self, state: MMState, ladder: QuoteLadder) -> List[Signal]:
        """Place every level of ``ladder``, bids first. Returns signals for placed orders."""
        quotes = [*ladder.bids, *ladder.asks]
        if not quotes:
            return []

        results = await self._submit([self._to_order(q) for q in quotes])
        if len(results) != len(quotes):
            log.warning(
                "Placement result count mismatch",
                session_id=self.config.id,
                submitted=len(quotes),
                returned=len(results),
            )

        signals: List[Signal] = []
        level = {Side.BUY: 0, Side.SELL: 0}
        for i, quote in enumerate(quotes):
            level[quote.side] += 1
            result = results[i] if i < len(results) else OrderPlacement(success=False, error="no result")
            if not result.is_resting:
                log.warning(
                    "Quote placement failed",
                    session_id=self.config.id,
                    side=quote.side.value,
                    price=quote.price,
                    size=quote.size,
                    error=result.error,
                )
                continue

            if quote.side == Side.BUY:
                state.active_bids.append(result.order_id)
            else:
                state.active_asks.append(result.order_id)
            signals.append(self._to_signal(quote, level[quote.side], ladder, result.order_id))

        return signals

    def _to_order(self, quote: Quote) -> MakerOrder:
        return MakerOrder(
            venue=self.config.venue,
            market_id=self.config.market_id,
            token_id=self.config.token_id,
            side=quote.side,
            price=quote.price,
            size=quote.size,
            neg_risk=self.config.neg_risk,
        )

    def _to_signal(self, quote: Quote, level: int, ladder: QuoteLadder, order_id: str) -> Signal:
        label = "bid" if quote.side == Side.BUY else "ask"
        return Signal(
            type=quote.side,
            venue=self.config.venue,
            market_id=self.config.market_id,
            outcome=self.config.outcome_name,
            price=quote.price,
            size=quote.size,
            reason=(
                f"MM {label} L{level} @ {quote.price} "
                f"(fv={ladder.fair_value:.2f}, skew={ladder.skew:.3f})"
            ),
            order_id=order_id,
        )


class BatchOrderManager(OrderManager):
    """One cancel call and one placement call per requote."""

    async def _cancel(self, order_ids: List[str]) -> None:
        try:
            await self.execution.cancel_orders_batch(self.config.venue, order_ids)
        except Exception as e:
            log.warning("Batch cancel failed", session_id=self.config.id, count=len(order_ids), error=str(e))

    async def _submit(self, orders: List[MakerOrder]) -> List[OrderPlacement]:
        try:
            return list(await self.execution.place_orders_batch(orders))
        except Exception as e:
            log.warning("Batch placement failed", session_id=self.config.id, count=len(orders), error=str(e))
            return [OrderPlacement(success=False, error=str(e)) for _ in orders]


class SequentialOrderManager(OrderManager):
    """Orders cancelled and placed one at a time; a failure never stops the rest."""

    async def _cancel(self, order_ids: List[str]) -> None:
        for order_id in order_ids:
            try:
                cancelled = await self.execution.cancel_order(self.config.venue, order_id)
            except Exception as e:
                log.warning("Cancel failed", session_id=self.config.id, order_id=order_id, error=str(e))
                continue
            if not cancelled:
                log.warning("Cancel rejected", session_id=self.config.id, order_id=order_id)

    async def _submit(self, orders: List[MakerOrder]) -> List[OrderPlacement]:
        results: List[OrderPlacement] = []
        for order in orders:
            place = self.execution.maker_buy if order.side == Side.BUY else self.execution.maker_sell
            try:
                results.append(await place(order))
            except Exception as e:
                results.append(OrderPlacement(success=False, error=str(e)))
        return results


def create_order_manager(execution: ExecutionService, config: MMConfig) -> OrderManager:
    """Pick the submission mode from the venue's batch capability."""
    if config.venue.supports_batch:
        return BatchOrderManager(execution, config)
    return SequentialOrderManager(execution, config)
