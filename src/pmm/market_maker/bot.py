import asyncio
from typing import List, Optional

from pmm.config import MMConfig, Settings, get_settings
from pmm.market_maker.interfaces import ExecutionService, PriceFeed
from pmm.market_maker.manager import SessionManager
from pmm.market_maker.types import Signal
from pmm.utils.logging import get_logger

log = get_logger(__name__)


class MarketMakerBot:
    """Drives the evaluation ticks of every session in a SessionManager."""

    def __init__(
        self,
        execution: ExecutionService,
        feed: PriceFeed,
        settings: Optional[Settings] = None,
        manager: Optional[SessionManager] = None,
    ):
        self.settings = settings or get_settings()
        self.manager = manager if manager is not None else SessionManager(execution, feed)
        self.cancel_on_stop = self.settings.mm_cancel_on_stop

        self._running = False
        self.tick_count = 0

    async def add(self, config: MMConfig) -> None:
        await self.manager.start(config)

    def _interval_seconds(self) -> float:
        sessions = self.manager.list()
        if not sessions:
            return 1.0
        return max(0.1, min(s.config.requote_interval_ms for s in sessions) / 1000)

    async def tick(self) -> List[Signal]:
        """Evaluate every session once; one failing session does not stop the others."""
        signals: List[Signal] = []
        for session in self.manager.list():
            try:
                signals.extend(await session.evaluate())
            except Exception as e:
                log.error("Error evaluating session", session_id=session.id, error=str(e), exc_info=True)
        self.tick_count += 1
        return signals

    async def run(self, max_ticks: Optional[int] = None, interval: Optional[float] = None) -> None:
        """Main execution loop."""
        self._running = True
        log.info("Market Maker Bot started", sessions=len(self.manager))

        try:
            while self._running:
                t0 = asyncio.get_running_loop().time()

                signals = await self.tick()
                if signals:
                    log.debug("Tick placed orders", count=len(signals))

                if max_ticks is not None and self.tick_count >= max_ticks:
                    break

                wait = interval if interval is not None else self._interval_seconds()
                elapsed = asyncio.get_running_loop().time() - t0
                await asyncio.sleep(max(0.0, wait - elapsed))

        except asyncio.CancelledError:
            log.info("Bot execution cancelled")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Graceful shutdown."""
        if not self._running and not len(self.manager):
            return
        log.info("Stopping Market Maker Bot")
        self._running = False
        await self.manager.stop_all(cancel_orders=self.cancel_on_stop)
        log.info("Bot stopped")

