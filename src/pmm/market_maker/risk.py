"""Fill accounting and the loss-triggered halt."""

from pmm.config import MMConfig
from pmm.market_maker.state import MMState
from pmm.market_maker.types import Side, TradeFill
from pmm.utils.logging import get_logger

log = get_logger(__name__)


def realized_pnl_for_fill(inventory: float, fill: TradeFill, fair_value: float) -> float:
    """P&L realized by the inventory-reducing part of a fill, marked at fair value."""
    if fill.side == Side.SELL and inventory > 0:
        closed = min(fill.filled, inventory)
        return closed * (fill.price - fair_value)
    if fill.side == Side.BUY and inventory < 0:
        closed = min(fill.filled, -inventory)
        return closed * (fair_value - fill.price)
    return 0.0


class RiskManager:
    """Applies fills to a session's state and halts it on excess loss."""

    def __init__(self, config: MMConfig, state: MMState):
        self.config = config
        self.state = state

    def record_fill(self, fill: TradeFill) -> bool:
        """Update inventory, P&L and fill count. Returns True if this fill halted the session."""
        state = self.state
        state.realized_pnl += realized_pnl_for_fill(state.inventory, fill, state.fair_value)
        if fill.side == Side.BUY:
            state.inventory += fill.filled
        else:
            state.inventory -= fill.filled
        state.fill_count += 1

        log.info(
            "Fill recorded",
            session_id=self.config.id,
            side=fill.side.value,
            price=fill.price,
            filled=fill.filled,
            inventory=state.inventory,
            realized_pnl=round(state.realized_pnl, 4),
        )

        if abs(state.inventory) > self.config.max_inventory:
            log.warning(
                "Inventory beyond configured maximum",
                session_id=self.config.id,
                inventory=state.inventory,
                max_inventory=self.config.max_inventory,
            )

        return self.check_loss_limit()

    def check_loss_limit(self) -> bool:
        state = self.state
        if state.is_halted or state.realized_pnl >= -self.config.max_loss_usd:
            return False

        state.halt(f"Max loss exceeded: ${state.realized_pnl:.2f}")
        log.error(
            "Quoting halted",
            session_id=self.config.id,
            reason=state.halt_reason,
            max_loss_usd=self.config.max_loss_usd,
        )
        return True
