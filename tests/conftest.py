"""Shared fixtures for pmm tests."""

from typing import Any

import pytest

from pmm.config import MMConfig
from pmm.market_maker.dry_run import PaperExecutionService, StaticPriceFeed, make_book
from pmm.market_maker.session import MarketMakerSession
from pmm.market_maker.types import Venue


def make_config(**overrides: Any) -> MMConfig:
    """Build an MMConfig with test-friendly defaults."""
    values: dict[str, Any] = {
        "venue": Venue.POLYMARKET,
        "market_id": "0xmarket",
        "token_id": "12345678901234",
        "base_spread_cents": 2.0,
        "min_spread_cents": 1.0,
        "max_spread_cents": 10.0,
        "order_size": 50.0,
        "max_inventory": 500.0,
        "skew_factor": 0.5,
        "volatility_multiplier": 10.0,
        "fair_value_alpha": 1.0,
        "fair_value_method": "mid_price",
        "requote_interval_ms": 5000,
        "requote_threshold_cents": 1.0,
        "max_loss_usd": 100.0,
    }
    values.update(overrides)
    return MMConfig(**values)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def advance(self, ms: float) -> None:
        self.now += ms

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def config() -> MMConfig:
    return make_config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def feed() -> StaticPriceFeed:
    return StaticPriceFeed(make_book(0.48, 0.52))


@pytest.fixture
def execution() -> PaperExecutionService:
    return PaperExecutionService()


@pytest.fixture
def session(config, execution, feed, clock) -> MarketMakerSession:
    return MarketMakerSession(config, execution, feed, clock=clock)
