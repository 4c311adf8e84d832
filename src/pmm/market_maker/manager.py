from typing import Any, Callable, Dict, List, Optional

from pmm.config import MMConfig
from pmm.market_maker.interfaces import ExecutionService, PriceFeed
from pmm.market_maker.session import MarketMakerSession
from pmm.market_maker.state import MMStateSnapshot
from pmm.utils.logging import get_logger

log = get_logger(__name__)


class SessionManager:
    """Registry of running market-making sessions, keyed by session id.

    Sessions are independent of each other; the manager only starts, stops
    and looks them up.
    """

    def __init__(
        self,
        execution: ExecutionService,
        feed: PriceFeed,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.execution = execution
        self.feed = feed
        self.clock = clock
        self._sessions: Dict[str, MarketMakerSession] = {}

    async def start(self, config: MMConfig) -> MarketMakerSession:
        if config.id in self._sessions:
            raise ValueError(f'MM "{config.id}" is already running')

        session = MarketMakerSession(config, self.execution, self.feed, clock=self.clock)
        await session.init()
        self._sessions[config.id] = session
        return session

    async def stop(self, session_id: str, cancel_orders: bool = True) -> MMStateSnapshot:
        session = self.get(session_id)
        await session.cleanup(cancel_orders=cancel_orders)
        del self._sessions[session_id]
        return session.snapshot()

    async def stop_all(self, cancel_orders: bool = True) -> None:
        for session_id in list(self._sessions):
            await self.stop(session_id, cancel_orders=cancel_orders)

    def get(self, session_id: str) -> MarketMakerSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise KeyError(f'No active MM with id "{session_id}"') from None

    def status(self, session_id: Optional[str] = None) -> List[MMStateSnapshot]:
        """Snapshot of one session, or of all sessions when no id is given."""
        if session_id is not None:
            return [self.get(session_id).snapshot()]
        return [session.snapshot() for session in self._sessions.values()]

    def list(self) -> List[MarketMakerSession]:
        return list(self._sessions.values())

    async def reconfigure(self, session_id: str, **changes: Any) -> MMConfig:
        """Apply ``changes`` and return the session's config.

        With no changes this just returns the current config.
        """
        session = self.get(session_id)
        if not changes:
            return session.config

        new_config = session.config.replace(**changes)
        await session.reconfigure(new_config)
        log.info("Session config replaced", session_id=session_id, changed=sorted(changes))
        return new_config

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
