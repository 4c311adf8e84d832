from decimal import ROUND_HALF_UP, Decimal
from typing import List

from pmm.config import MMConfig
from pmm.market_maker.types import Quote, QuoteLadder, Side
from pmm.utils.logging import get_logger

log = get_logger(__name__)

MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("0.99")
PRICE_TICK = Decimal("0.01")


def clamp_price(price: float) -> float:
    """Round to the nearest cent and clamp into the binary-outcome range."""
    bounded = min(float(MAX_PRICE), max(float(MIN_PRICE), price))
    return float(Decimal(str(bounded)).quantize(PRICE_TICK, rounding=ROUND_HALF_UP))


def round_size(size: float) -> int:
    """Round half-up to whole shares, never below one."""
    shares = int(Decimal(str(size)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(1, shares)


def compute_spread_cents(config: MMConfig, volatility: float) -> float:
    """Volatility-adjusted full spread in cents, clamped to the configured bounds."""
    adjusted = config.base_spread_cents * (1 + volatility * config.volatility_multiplier)
    return min(config.max_spread_cents, max(config.min_spread_cents, adjusted))


def compute_skew(config: MMConfig, inventory: float) -> float:
    """Price offset from inventory; positive when long."""
    if config.max_inventory == 0 or config.skew_factor == 0:
        return 0.0
    normalized = min(1.0, max(-1.0, inventory / config.max_inventory))
    return normalized * config.skew_factor * config.base_spread_cents / 100


def should_requote(
    new_fair_value: float,
    quoted_fair_value: float,
    threshold_cents: float,
    elapsed_ms: float,
    interval_ms: float,
) -> bool:
    """Requote when the interval has elapsed or fair value moved enough."""
    if elapsed_ms >= interval_ms:
        return True
    return abs(new_fair_value - quoted_fair_value) * 100 >= threshold_cents


class QuoteEngine:
    """Builds quote ladders around a fair value for one session's config."""

    def __init__(self, config: MMConfig):
        self.config = config

    def generate_quotes(self, fair_value: float, inventory: float, volatility: float) -> QuoteLadder:
        """
        Compute a bid/ask ladder, innermost level first.

        A level is only added while the cumulative size on its side, if
        fully filled, keeps ``|inventory|`` within ``max_inventory``. The
        first level that would breach the limit ends that side.
        """
        config = self.config
        spread_cents = compute_spread_cents(config, volatility)
        half_spread = spread_cents / 200
        skew = compute_skew(config, inventory)
        spacing = config.effective_level_spacing_cents / 100
        decay = config.effective_level_size_decay

        bids: List[Quote] = []
        asks: List[Quote] = []
        bid_open = True
        ask_open = True
        bid_exposure = inventory
        ask_exposure = inventory

        for level in range(config.levels_per_side):
            offset = level * spacing
            size = round_size(config.order_size * decay**level)

            if bid_open:
                if bid_exposure + size <= config.max_inventory:
                    bid_exposure += size
                    bids.append(
                        Quote(
                            side=Side.BUY,
                            price=clamp_price(fair_value - half_spread - skew - offset),
                            size=size,
                        )
                    )
                else:
                    bid_open = False

            if ask_open:
                if ask_exposure - size >= -config.max_inventory:
                    ask_exposure -= size
                    asks.append(
                        Quote(
                            side=Side.SELL,
                            price=clamp_price(fair_value + half_spread + skew + offset),
                            size=size,
                        )
                    )
                else:
                    ask_open = False

        if not bids or not asks:
            log.debug(
                "Inventory limit truncated ladder",
                market_id=config.market_id,
                inventory=inventory,
                bids=len(bids),
                asks=len(asks),
            )

        return QuoteLadder(
            bids=bids,
            asks=asks,
            fair_value=fair_value,
            spread_cents=spread_cents,
            skew=skew,
            volatility=volatility,
        )


def generate_quotes(config: MMConfig, fair_value: float, inventory: float, volatility: float) -> QuoteLadder:
    return QuoteEngine(config).generate_quotes(fair_value, inventory, volatility)
