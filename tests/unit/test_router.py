"""
Unit Tests for the Frame Router

These tests feed raw text frames through FrameRouter and check what lands in
the registry and on the emitter.

Run with:
    pytest tests/unit/test_router.py -v
"""

import json
import logging
from decimal import Decimal

import pytest

from core.schemas import ChannelKind, TradeSide
from exchanges.bitfinex.router import FrameRouter
from exchanges.bitfinex.subscriptions import SubscriptionRegistry
from services.event_bus import MarketEventEmitter


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def registry():
    return SubscriptionRegistry()


@pytest.fixture
def emitter():
    return MarketEventEmitter()


@pytest.fixture
def router(registry, emitter):
    return FrameRouter(registry, emitter)


@pytest.fixture
def captured(emitter):
    """Lists collecting everything the emitter publishes"""
    events = {"buy": [], "sell": [], "candles": []}
    emitter.on_buy_trade(events["buy"].append)
    emitter.on_sell_trade(events["sell"].append)
    emitter.on_candles(events["candles"].append)
    return events


def ack(chan_id, channel, **fields):
    return json.dumps({"event": "subscribed", "channel": channel, "chanId": chan_id, **fields})


# ============================================
# Control Frames
# ============================================

class TestSubscriptionAcks:
    """Acks update the registry so later data frames can be routed"""

    def test_trades_ack_is_recorded(self, router, registry):
        router.route(ack(5, "trades", symbol="tBTCUSD"))

        assert registry.find_by_kind_and_symbol(ChannelKind.TRADES, "tBTCUSD") == 5
        assert registry.resolve(5).symbol == "tBTCUSD"

    def test_candles_ack_is_recorded_by_key_symbol(self, router, registry):
        router.route(ack(7, "candles", key="trade:1m:tETHUSD"))

        sub = registry.resolve(7)
        assert sub.kind == ChannelKind.CANDLES
        assert sub.symbol == "tETHUSD"

    def test_unsubscribed_ack_removes_channel(self, router, registry):
        router.route(ack(5, "trades", symbol="tBTCUSD"))
        router.route(json.dumps({"event": "unsubscribed", "status": "OK", "chanId": 5}))

        assert registry.resolve(5) is None

    def test_unsupported_channel_ack_is_ignored(self, router, registry):
        router.route(ack(9, "book", symbol="tBTCUSD"))
        assert len(registry) == 0

    def test_malformed_ack_is_discarded(self, router, registry):
        router.route(json.dumps({"event": "subscribed", "channel": "trades", "symbol": "tBTCUSD"}))
        router.route("{not json")
        assert len(registry) == 0

    def test_server_error_event_is_absorbed(self, router, registry):
        router.route(json.dumps({"event": "error", "msg": "symbol: invalid", "code": 10300}))
        assert len(registry) == 0


# ============================================
# Data Frames
# ============================================

class TestDataRouting:
    """Data frames reach the emitter through the registry"""

    def test_buy_and_sell_trades_are_split(self, router, captured):
        router.route(ack(5, "trades", symbol="BTCUSD"))
        router.route('[5, "te", [101, 1700000000000, 0.5, 42000.0]]')
        router.route('[5, "te", [102, 1700000000001, -0.25, 41999.0]]')

        assert [t.id for t in captured["buy"]] == ["101"]
        assert captured["buy"][0].side == TradeSide.BUY
        assert captured["buy"][0].pair == "BTCUSD"
        assert [t.id for t in captured["sell"]] == ["102"]
        assert captured["sell"][0].amount == Decimal("0.25")

    def test_heartbeat_emits_nothing(self, router, captured):
        router.route(ack(5, "trades", symbol="BTCUSD"))
        router.route('[5, "hb"]')

        assert captured == {"buy": [], "sell": [], "candles": []}

    def test_candle_batch_is_emitted_once(self, router, captured):
        router.route(ack(7, "candles", key="trade:1m:ETHUSD"))
        router.route("[7, [[1700000000000, 100, 102, 105, 99, 10]]]")

        assert len(captured["candles"]) == 1
        batch = captured["candles"][0]
        assert len(batch) == 1
        assert batch[0].close == Decimal("102")

    def test_empty_candle_batch_is_not_emitted(self, router, captured):
        router.route(ack(7, "candles", key="trade:1m:ETHUSD"))
        router.route("[7, []]")

        assert captured["candles"] == []

    def test_unknown_channel_is_silently_dropped(self, router, captured):
        router.route('[42, "te", [101, 1700000000000, 0.5, 42000.0]]')

        assert captured == {"buy": [], "sell": [], "candles": []}

    def test_frames_after_unsubscribe_are_dropped(self, router, captured):
        router.route(ack(5, "trades", symbol="BTCUSD"))
        router.route(json.dumps({"event": "unsubscribed", "status": "OK", "chanId": 5}))
        router.route('[5, "te", [101, 1700000000000, 0.5, 42000.0]]')

        assert captured["buy"] == []

    def test_order_is_preserved(self, router, captured):
        router.route(ack(5, "trades", symbol="BTCUSD"))
        for i in range(10):
            router.route(json.dumps([5, "te", [i, 1700000000000 + i, 1, 100]]))

        assert [t.id for t in captured["buy"]] == [str(i) for i in range(10)]


# ============================================
# Logging of Dropped Frames
# ============================================

class TestDroppedFrameLogging:
    """Discarded frames are logged, at a level matching how unusual they are"""

    def test_malformed_frame_logs_warning_with_raw(self, router, caplog):
        caplog.set_level(logging.DEBUG, logger="bfxconnector")

        router.route("{not json")

        drops = [r for r in caplog.records if r.getMessage().startswith("Frame dropped: bitfinex")]
        assert len(drops) == 1
        assert drops[0].levelno == logging.WARNING
        assert "raw={not json" in drops[0].getMessage()

    def test_unknown_channel_logs_debug_only(self, router, caplog):
        caplog.set_level(logging.DEBUG, logger="bfxconnector")

        router.route('[42, "te", [101, 1700000000000, 0.5, 42000.0]]')

        drops = [r for r in caplog.records if r.getMessage().startswith("Frame dropped: bitfinex")]
        assert [r.levelno for r in drops] == [logging.DEBUG]
        assert "channel 42" in drops[0].getMessage()
