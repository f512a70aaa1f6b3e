"""
Unit Tests for the Event Bus

Run with:
    pytest tests/unit/test_event_bus.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.exceptions import FatalLoopError
from core.schemas import Candle, Trade, TradeSide
from services.event_bus import BUY_TRADES, CANDLES, ERRORS, SELL_TRADES, EventBus, MarketEventEmitter


TS = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


def make_trade(trade_id: str, side: TradeSide) -> Trade:
    return Trade(id=trade_id, time=TS, amount=Decimal("1"), price=Decimal("100"), side=side, pair="tBTCUSD")


def make_candle() -> Candle:
    return Candle(
        open_time=TS,
        open=Decimal("1"),
        high=Decimal("2"),
        low=Decimal("0.5"),
        close=Decimal("1.5"),
        volume=Decimal("3")
    )


# ============================================
# Tests for EventBus
# ============================================

class TestEventBus:
    """Tests for listener and queue delivery"""

    def test_listeners_receive_events_in_order(self):
        bus = EventBus()
        received = []
        bus.add_listener("topic", received.append)

        for i in range(5):
            bus.publish("topic", i)

        assert received == [0, 1, 2, 3, 4]

    def test_listener_exception_does_not_stop_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.add_listener("topic", broken)
        bus.add_listener("topic", received.append)

        bus.publish("topic", "event")

        assert received == ["event"]

    def test_removed_listener_gets_nothing(self):
        bus = EventBus()
        received = []
        bus.add_listener("topic", received.append)
        bus.remove_listener("topic", received.append)

        bus.publish("topic", "event")

        assert received == []

    def test_publish_without_subscribers_is_noop(self):
        EventBus().publish("nobody", "event")

    @pytest.mark.asyncio
    async def test_queue_subscriber_receives_events(self):
        bus = EventBus()
        queue = bus.subscribe("topic")

        bus.publish("topic", "a")
        bus.publish("topic", "b")

        assert await queue.get() == "a"
        assert await queue.get() == "b"

    @pytest.mark.asyncio
    async def test_full_queue_drops_events(self):
        bus = EventBus(max_queue_size=1)
        queue = bus.subscribe("topic")

        bus.publish("topic", "kept")
        bus.publish("topic", "dropped")

        assert queue.qsize() == 1
        assert queue.get_nowait() == "kept"

    @pytest.mark.asyncio
    async def test_unsubscribed_queue_gets_nothing(self):
        bus = EventBus()
        queue = bus.subscribe("topic")
        bus.unsubscribe("topic", queue)

        bus.publish("topic", "event")

        assert queue.empty()


# ============================================
# Tests for MarketEventEmitter
# ============================================

class TestMarketEventEmitter:
    """Tests for typed emit / on helpers"""

    def test_trades_are_routed_by_side(self):
        emitter = MarketEventEmitter()
        buys, sells = [], []
        emitter.on_buy_trade(buys.append)
        emitter.on_sell_trade(sells.append)

        emitter.emit_trade(make_trade("1", TradeSide.BUY))
        emitter.emit_trade(make_trade("2", TradeSide.SELL))

        assert [t.id for t in buys] == ["1"]
        assert [t.id for t in sells] == ["2"]

    def test_candles_are_published_as_tuple(self):
        emitter = MarketEventEmitter()
        batches = []
        emitter.on_candles(batches.append)

        emitter.emit_candles([make_candle(), make_candle()])

        assert len(batches) == 1
        assert isinstance(batches[0], tuple)
        assert len(batches[0]) == 2

    def test_errors_topic(self):
        emitter = MarketEventEmitter()
        errors = []
        emitter.on_error(errors.append)
        error = FatalLoopError("loop died")

        emitter.emit_error(error)

        assert errors == [error]

    @pytest.mark.asyncio
    async def test_topic_constants_match_queues(self):
        emitter = MarketEventEmitter()
        queues = {topic: emitter.subscribe(topic) for topic in (BUY_TRADES, SELL_TRADES, CANDLES, ERRORS)}

        emitter.emit_trade(make_trade("1", TradeSide.SELL))

        assert queues[SELL_TRADES].qsize() == 1
        assert queues[BUY_TRADES].empty()
