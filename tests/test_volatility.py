"""Tests for the rolling price history and volatility estimate."""

import pytest

from pmm.market_maker.volatility import MAX_HISTORY, PriceHistory, compute_volatility, simple_returns


def test_fewer_than_two_samples_is_zero():
    assert compute_volatility([]) == 0.0
    assert compute_volatility([0.5]) == 0.0


def test_constant_prices_have_zero_volatility():
    assert compute_volatility([0.5] * 20) == 0.0


def test_population_std_of_simple_returns():
    # returns: +10%, -10%
    assert compute_volatility([1.0, 1.1, 0.99]) == pytest.approx(0.1)


def test_zero_price_steps_are_skipped():
    assert simple_returns([0.0, 0.5, 0.55]) == pytest.approx([0.1])
    assert compute_volatility([0.0, 0.5, 0.55]) == 0.0


def test_history_is_bounded():
    history = PriceHistory()
    for i in range(MAX_HISTORY + 50):
        history.append(float(i + 1))

    assert len(history) == MAX_HISTORY
    assert history.values()[0] == 51.0
    assert history.values()[-1] == float(MAX_HISTORY + 50)


def test_history_volatility_matches_function():
    history = PriceHistory(maxlen=10)
    history.extend([0.50, 0.52, 0.49, 0.51])
    assert history.volatility() == pytest.approx(compute_volatility([0.50, 0.52, 0.49, 0.51]))
    history.clear()
    assert history.volatility() == 0.0
