import math
from collections import deque
from typing import Deque, Iterable, List, Sequence

MAX_HISTORY = 200


class PriceHistory:
    """Bounded rolling window of price observations, oldest first."""

    def __init__(self, maxlen: int = MAX_HISTORY):
        self._prices: Deque[float] = deque(maxlen=maxlen)

    def append(self, price: float) -> None:
        self._prices.append(price)

    def extend(self, prices: Iterable[float]) -> None:
        self._prices.extend(prices)

    def clear(self) -> None:
        self._prices.clear()

    def values(self) -> List[float]:
        return list(self._prices)

    @property
    def maxlen(self) -> int:
        return self._prices.maxlen or MAX_HISTORY

    def volatility(self) -> float:
        return compute_volatility(self._prices)

    def __len__(self) -> int:
        return len(self._prices)


def simple_returns(prices: Sequence[float]) -> List[float]:
    """Period-over-period returns, skipping steps from a zero price."""
    returns = []
    for prev, curr in zip(prices, list(prices)[1:]):
        if prev == 0:
            continue
        returns.append((curr - prev) / prev)
    return returns


def compute_volatility(prices: Iterable[float]) -> float:
    """Population standard deviation of simple returns.

    Fewer than two prices (or no usable returns) gives zero.
    """
    series = list(prices)
    if len(series) < 2:
        return 0.0

    returns = simple_returns(series)
    if not returns:
        return 0.0

    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance)
