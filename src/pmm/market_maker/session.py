import asyncio
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from pmm.config import MMConfig
from pmm.market_maker.fair_value import compute_fair_value, update_ema_fair_value
from pmm.market_maker.interfaces import ExecutionService, PriceFeed, Unsubscribe
from pmm.market_maker.orders import OrderManager, create_order_manager
from pmm.market_maker.quotes import QuoteEngine, should_requote
from pmm.market_maker.risk import RiskManager
from pmm.market_maker.state import MMState, MMStateSnapshot
from pmm.market_maker.types import OrderBookSnapshot, PriceUpdate, Signal, TradeFill, Venue
from pmm.utils.logging import get_logger

log = get_logger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class StrategyDescriptor:
    """How the scheduler sees a session."""

    id: str
    name: str
    venues: List[Venue]
    markets: List[str]
    interval_ms: int
    max_position_size: float
    max_exposure: float
    enabled: bool = True
    dry_run: bool = False


class MarketMakerSession:
    """One quoting session for a single market outcome on a single venue.

    Ticks (``evaluate``) and fills (``on_trade``) are serialized by a
    per-session lock so inventory and halt state never race.
    """

    def __init__(
        self,
        config: MMConfig,
        execution: ExecutionService,
        feed: PriceFeed,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config
        self.execution = execution
        self.feed = feed
        self.clock = clock or _now_ms

        self.state = MMState()
        self.quote_engine = QuoteEngine(config)
        self.order_manager: OrderManager = create_order_manager(execution, config)
        self.risk = RiskManager(config, self.state)

        self._lock = asyncio.Lock()
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def descriptor(self) -> StrategyDescriptor:
        return StrategyDescriptor(
            id=f"mm_{self.config.id}",
            name=f"MM: {self.config.outcome_name}",
            venues=[self.config.venue],
            markets=[self.config.market_id],
            interval_ms=self.config.requote_interval_ms,
            max_position_size=self.config.max_position_value_usd,
            max_exposure=self.config.max_position_value_usd,
        )

    async def init(self) -> None:
        """Subscribe to price updates feeding the volatility window."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.feed.subscribe_price(
            self.config.venue, self.config.market_id, self._on_price
        )
        log.info(
            "Market maker session started",
            session_id=self.id,
            venue=self.config.venue.value,
            market_id=self.config.market_id,
            batch=self.config.venue.supports_batch,
        )

    def _on_price(self, update: PriceUpdate) -> None:
        self.state.price_history.append(update.price)

    async def evaluate(self) -> List[Signal]:
        """Run one tick. Returns signals for the orders placed, if any."""
        async with self._lock:
            return await self._evaluate()

    async def _evaluate(self) -> List[Signal]:
        state = self.state
        if state.is_halted:
            return []

        book = await self._fetch_book()
        if book is None or not book.is_two_sided:
            log.debug("Order book unavailable, skipping tick", session_id=self.id)
            return []

        now = self.clock()
        raw_fair_value = compute_fair_value(book, self.config.fair_value_method)
        if state.last_requote_at > 0 and not should_requote(
            raw_fair_value,
            state.fair_value,
            self.config.requote_threshold_cents,
            now - state.last_requote_at,
            self.config.requote_interval_ms,
        ):
            return []

        await self.order_manager.cancel_all(state)

        state.fair_value = raw_fair_value
        state.ema_fair_value = update_ema_fair_value(
            state.ema_fair_value, raw_fair_value, self.config.fair_value_alpha
        )

        ladder = self.quote_engine.generate_quotes(
            fair_value=state.ema_fair_value,
            inventory=state.inventory,
            volatility=state.price_history.volatility(),
        )
        signals = await self.order_manager.place_ladder(state, ladder)

        state.last_requote_at = now
        state.mark_placed(bool(signals))

        log.info(
            "Requoted",
            session_id=self.id,
            fair_value=round(ladder.fair_value, 4),
            spread_cents=round(ladder.spread_cents, 3),
            skew=round(ladder.skew, 4),
            bids=len(state.active_bids),
            asks=len(state.active_asks),
        )
        return signals

    async def _fetch_book(self) -> Optional[OrderBookSnapshot]:
        try:
            return await self.feed.get_orderbook(self.config.venue, self.config.market_id)
        except Exception as e:
            log.warning("Order book fetch failed", session_id=self.id, error=str(e))
            return None

    async def on_trade(self, fill: TradeFill) -> None:
        """Apply a fill notification."""
        async with self._lock:
            self.risk.record_fill(fill)

    async def cleanup(self, cancel_orders: bool = True) -> None:
        """Unsubscribe from the feed and cancel all resting orders."""
        async with self._lock:
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            if cancel_orders:
                await self.order_manager.cancel_all(self.state)
            self.state.mark_placed(False)
        log.info("Market maker session stopped", session_id=self.id)

    async def reconfigure(self, config: MMConfig) -> None:
        """Swap in a new config. State carries over."""
        if (config.id, config.venue, config.market_id, config.token_id) != (
            self.config.id,
            self.config.venue,
            self.config.market_id,
            self.config.token_id,
        ):
            raise ValueError("Reconfiguration cannot change session identity")

        async with self._lock:
            self.config = config
            self.quote_engine = QuoteEngine(config)
            self.order_manager = create_order_manager(self.execution, config)
            self.risk = RiskManager(config, self.state)
            # A lower loss ceiling can apply immediately.
            self.risk.check_loss_limit()
        log.info("Market maker reconfigured", session_id=self.id)

    def snapshot(self) -> MMStateSnapshot:
        return self.state.snapshot(self.id)
