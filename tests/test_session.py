"""Tests for the per-session tick, fill and shutdown lifecycle."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from pmm.market_maker.dry_run import PaperExecutionService, StaticPriceFeed, make_book
from pmm.market_maker.session import MarketMakerSession
from pmm.market_maker.state import Idle
from pmm.market_maker.types import OrderBookLevel, OrderBookSnapshot, Side, TradeFill, Venue
from tests.conftest import FakeClock, make_config


def loss_fill() -> TradeFill:
    return TradeFill(side=Side.SELL, price=0.01, filled=1000)


@pytest.mark.asyncio
class TestEvaluate:
    async def test_first_tick_quotes(self, session, execution):
        signals = await session.evaluate()

        assert [s.type for s in signals] == [Side.BUY, Side.SELL]
        assert [s.price for s in signals] == [0.49, 0.51]
        assert session.state.is_quoting
        assert session.state.fair_value == pytest.approx(0.50)
        assert session.state.ema_fair_value == pytest.approx(0.50)
        assert len(execution.open_orders) == 2

    async def test_no_requote_inside_interval_without_move(self, session, clock, execution):
        await session.evaluate()
        clock.advance(1000)

        assert await session.evaluate() == []
        assert execution.calls == ["place_orders_batch"]

    async def test_requote_after_interval_replaces_orders(self, session, clock, execution):
        await session.evaluate()
        first_ids = session.state.resting_order_ids()
        clock.advance(5000)

        signals = await session.evaluate()

        assert len(signals) == 2
        assert execution.cancelled == first_ids
        assert set(execution.open_orders) == set(session.state.resting_order_ids())
        assert session.state.last_requote_at == clock.now

    async def test_requote_on_price_move_before_interval(self, session, clock, feed):
        await session.evaluate()
        clock.advance(100)
        feed.set_book(make_book(0.50, 0.54))

        signals = await session.evaluate()

        assert [s.price for s in signals] == [0.51, 0.53]
        assert session.state.fair_value == pytest.approx(0.52)

    async def test_requote_decision_uses_previous_fair_value(self, session, clock, feed):
        await session.evaluate()
        clock.advance(100)
        feed.set_book(make_book(0.485, 0.525))  # mid 0.505, half a cent away

        assert await session.evaluate() == []
        assert session.state.fair_value == pytest.approx(0.50)

    @pytest.mark.parametrize(
        "book",
        [
            None,
            OrderBookSnapshot(bids=[], asks=[], mid_price=0.5),
            OrderBookSnapshot(bids=[], asks=[OrderBookLevel(price=0.52, size=100)], mid_price=0.5),
        ],
    )
    async def test_missing_or_one_sided_book_is_a_no_op(self, session, feed, execution, book):
        feed.set_book(book)

        assert await session.evaluate() == []
        assert execution.calls == []
        assert isinstance(session.state.status, Idle)

    async def test_feed_error_is_a_no_op(self, config, execution, clock):
        feed = StaticPriceFeed()
        feed.get_orderbook = AsyncMock(side_effect=ConnectionError("down"))
        session = MarketMakerSession(config, execution, feed, clock=clock)

        assert await session.evaluate() == []

    async def test_all_placements_failing_leaves_session_idle(self, config, feed, clock):
        execution = PaperExecutionService(reject=lambda order: True)
        session = MarketMakerSession(config, execution, feed, clock=clock)

        assert await session.evaluate() == []
        assert isinstance(session.state.status, Idle)
        assert session.state.last_requote_at == clock.now

    async def test_ema_smooths_fair_value(self, execution, feed, clock):
        session = MarketMakerSession(make_config(fair_value_alpha=0.5), execution, feed, clock=clock)
        await session.evaluate()
        clock.advance(5000)
        feed.set_book(make_book(0.52, 0.56))

        await session.evaluate()

        assert session.state.fair_value == pytest.approx(0.54)
        assert session.state.ema_fair_value == pytest.approx(0.52)

    async def test_inventory_skews_next_ladder(self, session, clock):
        await session.on_trade(TradeFill(side=Side.BUY, price=0.49, filled=250))
        signals = await session.evaluate()

        # skew = 0.5 * 0.5 * 2 / 100 = 0.005
        assert signals[0].reason.endswith("skew=0.005)")
        assert signals[0].size == 50

    async def test_price_history_drives_volatility(self, session, feed, config):
        await session.init()
        for price in [0.50, 0.55, 0.45, 0.55, 0.45]:
            feed.push_price(config.market_id, price)

        signals = await session.evaluate()

        assert len(session.state.price_history) == 5
        assert signals[0].price < 0.49
        assert signals[1].price > 0.51

    async def test_non_batch_venue_uses_single_order_calls(self, execution, feed, clock):
        session = MarketMakerSession(make_config(venue=Venue.KALSHI), execution, feed, clock=clock)
        await session.evaluate()
        clock.advance(5000)
        await session.evaluate()

        assert execution.calls == [
            "maker_buy",
            "maker_sell",
            "cancel_order",
            "cancel_order",
            "maker_buy",
            "maker_sell",
        ]


@pytest.mark.asyncio
class TestHalt:
    async def test_halted_session_never_quotes_again(self, session, clock, execution):
        await session.evaluate()
        await session.on_trade(TradeFill(side=Side.BUY, price=0.49, filled=1000))
        await session.on_trade(loss_fill())
        calls_at_halt = list(execution.calls)

        for _ in range(3):
            clock.advance(10_000)
            assert await session.evaluate() == []

        assert session.state.is_halted
        assert session.state.halt_reason.startswith("Max loss exceeded")
        assert execution.calls == calls_at_halt

    async def test_snapshot_reports_halt(self, session):
        await session.evaluate()
        await session.on_trade(TradeFill(side=Side.BUY, price=0.5, filled=1000))
        await session.on_trade(loss_fill())

        snapshot = session.snapshot()

        assert snapshot.status.startswith("HALTED: ")
        assert snapshot.halt_reason is not None
        assert snapshot.is_quoting is False
        assert snapshot.fill_count == 2


@pytest.mark.asyncio
class TestLifecycle:
    async def test_init_subscribes_once(self, session, feed, config):
        await session.init()
        await session.init()
        assert feed.subscriber_count(config.market_id) == 1

    async def test_cleanup_unsubscribes_and_cancels(self, session, feed, config, execution):
        await session.init()
        await session.evaluate()

        await session.cleanup()

        assert feed.subscriber_count(config.market_id) == 0
        assert execution.open_orders == {}
        assert session.state.resting_order_ids() == []
        assert isinstance(session.state.status, Idle)

    async def test_snapshot_fields(self, session):
        await session.evaluate()
        snapshot = session.snapshot()

        assert snapshot.session_id == session.id
        assert snapshot.status == "QUOTING"
        assert snapshot.fair_value == pytest.approx(0.5)
        assert snapshot.active_bids == 1
        assert snapshot.active_asks == 1
        assert snapshot.inventory == 0
        assert snapshot.halt_reason is None

    async def test_descriptor(self, session, config):
        descriptor = session.descriptor
        assert descriptor.id == f"mm_{config.id}"
        assert descriptor.name == f"MM: {config.outcome_name}"
        assert descriptor.interval_ms == config.requote_interval_ms
        assert descriptor.max_exposure == config.max_position_value_usd

    async def test_reconfigure_keeps_state(self, session, config):
        await session.evaluate()
        await session.reconfigure(config.replace(base_spread_cents=4))

        assert session.config.base_spread_cents == 4
        assert session.quote_engine.config is session.config
        assert session.state.is_quoting

    async def test_reconfigure_lower_loss_ceiling_halts(self, session, config):
        await session.evaluate()
        await session.on_trade(TradeFill(side=Side.BUY, price=0.5, filled=100))
        await session.on_trade(TradeFill(side=Side.SELL, price=0.45, filled=100))
        assert not session.state.is_halted

        await session.reconfigure(config.replace(max_loss_usd=1))

        assert session.state.is_halted

    async def test_reconfigure_rejects_new_identity(self, session, config):
        other = make_config(token_id="99999999999")
        with pytest.raises(ValueError):
            await session.reconfigure(other)

    async def test_ticks_and_fills_are_serialized(self, config, feed):
        execution = PaperExecutionService()
        session = MarketMakerSession(config, execution, feed, clock=FakeClock())

        fills = [TradeFill(side=Side.BUY, price=0.49, filled=1) for _ in range(20)]
        await asyncio.gather(session.evaluate(), *(session.on_trade(f) for f in fills))

        assert session.state.inventory == 20
        assert session.state.fill_count == 20
