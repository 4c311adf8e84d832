from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Union

from pmm.market_maker.volatility import PriceHistory


@dataclass(frozen=True)
class Idle:
    """No orders placed yet, or the last requote placed nothing."""

    label = "IDLE"


@dataclass(frozen=True)
class Quoting:
    """At least one order from the last requote is resting."""

    label = "QUOTING"


@dataclass(frozen=True)
class Halted:
    """Terminal: realized loss crossed the configured ceiling."""

    reason: str

    @property
    def label(self) -> str:
        return f"HALTED: {self.reason}"


SessionStatus = Union[Idle, Quoting, Halted]


@dataclass
class MMState:
    """Mutable state of one quoting session."""

    fair_value: float = 0.0
    ema_fair_value: float = 0.0
    inventory: float = 0.0
    realized_pnl: float = 0.0
    fill_count: int = 0
    active_bids: List[str] = field(default_factory=list)
    active_asks: List[str] = field(default_factory=list)
    price_history: PriceHistory = field(default_factory=PriceHistory)
    last_requote_at: float = 0.0  # epoch ms, 0 = never
    status: SessionStatus = field(default_factory=Idle)

    @property
    def is_halted(self) -> bool:
        return isinstance(self.status, Halted)

    @property
    def is_quoting(self) -> bool:
        return isinstance(self.status, Quoting)

    @property
    def halt_reason(self) -> Optional[str]:
        if isinstance(self.status, Halted):
            return self.status.reason
        return None

    def resting_order_ids(self) -> List[str]:
        return [*self.active_bids, *self.active_asks]

    def mark_placed(self, placed_any: bool) -> None:
        """Record the outcome of a requote unless the session is halted."""
        if self.is_halted:
            return
        self.status = Quoting() if placed_any else Idle()

    def halt(self, reason: str) -> None:
        # First reason wins; halting is terminal.
        if not self.is_halted:
            self.status = Halted(reason)

    def snapshot(self, session_id: str = "") -> "MMStateSnapshot":
        return MMStateSnapshot(
            session_id=session_id,
            status=self.status.label,
            fair_value=self.fair_value,
            ema_fair_value=self.ema_fair_value,
            inventory=self.inventory,
            realized_pnl=self.realized_pnl,
            fill_count=self.fill_count,
            active_bids=len(self.active_bids),
            active_asks=len(self.active_asks),
            price_history_samples=len(self.price_history),
            halt_reason=self.halt_reason,
            is_quoting=self.is_quoting,
        )


@dataclass(frozen=True)
class MMStateSnapshot:
    """Read-only view of a session for monitoring and the CLI."""

    session_id: str
    status: str
    fair_value: float
    ema_fair_value: float
    inventory: float
    realized_pnl: float
    fill_count: int
    active_bids: int
    active_asks: int
    price_history_samples: int
    halt_reason: Optional[str]
    is_quoting: bool
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
