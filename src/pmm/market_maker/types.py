from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class Venue(str, Enum):
    """Trading venues a session can quote on."""

    POLYMARKET = "polymarket"
    KALSHI = "kalshi"

    @property
    def supports_batch(self) -> bool:
        """Whether the venue accepts multi-order cancel/place in one call."""
        return self is Venue.POLYMARKET


class FairValueMethod(str, Enum):
    """How a raw fair value is derived from an order book snapshot."""

    MID_PRICE = "mid_price"
    WEIGHTED_MID = "weighted_mid"
    VWAP = "vwap"
    EMA = "ema"


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass
class OrderBookLevel:
    """A single price level in the order book."""

    price: float
    size: float


@dataclass
class OrderBookSnapshot:
    """Top-of-book view for one outcome token, best levels first."""

    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)
    mid_price: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def best_bid(self) -> Optional[OrderBookLevel]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[OrderBookLevel]:
        return self.asks[0] if self.asks else None

    @property
    def is_two_sided(self) -> bool:
        return bool(self.bids) and bool(self.asks)


@dataclass
class PriceUpdate:
    """Price tick pushed by the price feed."""

    market_id: str
    price: float
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Quote:
    """One price level on one side of the ladder."""

    side: Side
    price: float
    size: int


@dataclass
class QuoteLadder:
    """Full two-sided ladder produced in one tick, innermost level first."""

    bids: List[Quote]
    asks: List[Quote]
    fair_value: float
    spread_cents: float
    skew: float
    volatility: float

    @property
    def best_bid(self) -> Optional[Quote]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[Quote]:
        return self.asks[0] if self.asks else None


@dataclass
class MakerOrder:
    """Post-only order request handed to the execution service."""

    venue: Venue
    market_id: str
    token_id: str
    side: Side
    price: float
    size: int
    neg_risk: bool = False
    post_only: bool = True


@dataclass
class OrderPlacement:
    """Outcome of a single order placement."""

    success: bool
    order_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_resting(self) -> bool:
        return self.success and bool(self.order_id)


@dataclass
class TradeFill:
    """Fill notification for one of the session's resting orders."""

    side: Side
    price: float
    filled: float
    order_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Signal:
    """Record of a successfully placed order for downstream logging."""

    type: Side
    venue: Venue
    market_id: str
    outcome: str
    price: float
    size: int
    reason: str
    confidence: float = 1.0
    order_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
