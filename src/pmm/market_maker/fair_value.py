"""Fair value estimation from order book snapshots."""

from typing import Callable, Dict, List

from pmm.market_maker.types import FairValueMethod, OrderBookLevel, OrderBookSnapshot

VWAP_DEPTH = 5


def mid_price(book: OrderBookSnapshot) -> float:
    return book.mid_price


def weighted_mid(book: OrderBookSnapshot) -> float:
    """Size-weighted mid: each side's price is weighted by the opposite size.

    A heavier bid pulls the estimate toward the ask and vice versa.
    """
    best_bid = book.best_bid
    best_ask = book.best_ask
    if best_bid is None or best_ask is None:
        return book.mid_price

    total_size = best_bid.size + best_ask.size
    if total_size <= 0:
        return book.mid_price

    return (best_bid.price * best_ask.size + best_ask.price * best_bid.size) / total_size


def _side_vwap(levels: List[OrderBookLevel]) -> float:
    top = levels[:VWAP_DEPTH]
    total_size = sum(level.size for level in top)
    if total_size <= 0:
        return 0.0
    return sum(level.price * level.size for level in top) / total_size


def vwap(book: OrderBookSnapshot) -> float:
    """Average of the bid-side and ask-side VWAPs over the top levels."""
    bid_vwap = _side_vwap(book.bids)
    ask_vwap = _side_vwap(book.asks)

    if bid_vwap == 0 and ask_vwap == 0:
        return book.mid_price
    if bid_vwap == 0:
        return ask_vwap
    if ask_vwap == 0:
        return bid_vwap
    return (bid_vwap + ask_vwap) / 2


def ema_input(book: OrderBookSnapshot) -> float:
    # The EMA method has no estimator of its own; smoothing happens in
    # update_ema_fair_value like every other method.
    return book.mid_price


FAIR_VALUE_ESTIMATORS: Dict[FairValueMethod, Callable[[OrderBookSnapshot], float]] = {
    FairValueMethod.MID_PRICE: mid_price,
    FairValueMethod.WEIGHTED_MID: weighted_mid,
    FairValueMethod.VWAP: vwap,
    FairValueMethod.EMA: ema_input,
}


def compute_fair_value(book: OrderBookSnapshot, method: FairValueMethod) -> float:
    """Raw fair value of ``book`` using ``method``."""
    return FAIR_VALUE_ESTIMATORS[FairValueMethod(method)](book)


def update_ema_fair_value(previous: float, raw: float, alpha: float) -> float:
    """One EMA step. A previous value of zero means uninitialized."""
    if previous == 0:
        return raw
    return alpha * raw + (1 - alpha) * previous
