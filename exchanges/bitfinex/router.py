"""
Frame Router

Glue between the receive loop and the rest of the engine:

    text -> decode_frame -> ControlFrame -> SubscriptionRegistry
                         -> DataFrame    -> registry lookup -> parse_trade / parse_candles -> emitter
                         -> ServerError  -> warning log

Malformed frames and frames for unknown channels are dropped here; anything
else that goes wrong propagates to the receive loop, which treats it as fatal.
"""

import logging

from core.exceptions import ProtocolDecodeError, UnknownChannelError
from core.logging import get_logger, log_channel_event, log_frame_drop
from core.schemas import ChannelKind, Subscription
from exchanges.bitfinex.frames import (
    SUBSCRIBED,
    ControlFrame,
    DataFrame,
    ServerError,
    decode_frame,
)
from exchanges.bitfinex.parsers import parse_candles, parse_trade
from exchanges.bitfinex.subscriptions import SubscriptionRegistry
from services.event_bus import MarketEventEmitter


class FrameRouter:
    """
    Routes decoded frames to the registry and the event emitter.

    Attributes:
        registry: Channel id -> Subscription mapping shared with the client
        emitter: Destination for decoded trades and candle batches
    """

    EXCHANGE = "bitfinex"

    def __init__(self, registry: SubscriptionRegistry, emitter: MarketEventEmitter):
        self.registry = registry
        self.emitter = emitter
        self.logger = get_logger(__name__)

    def route(self, text: str) -> None:
        """
        Handle one inbound text message.

        Raises:
            Exception: Only for unexpected failures; decode problems and
                unknown channels are absorbed here
        """
        try:
            frame = decode_frame(text)
            if frame is None:
                return

            if isinstance(frame, ControlFrame):
                self._handle_control(frame)
            elif isinstance(frame, DataFrame):
                self._handle_data(frame)
            elif isinstance(frame, ServerError):
                self.logger.warning(f"Server error event: code={frame.code} msg={frame.message}")

        except ProtocolDecodeError as e:
            log_frame_drop(self.EXCHANGE, str(e), e.raw)

        except UnknownChannelError as e:
            # Frames keep arriving for a moment after unsubscribe
            log_frame_drop(self.EXCHANGE, str(e), level=logging.DEBUG)

    # ============================================
    # Control Frames
    # ============================================

    def _handle_control(self, frame: ControlFrame) -> None:
        if frame.event != SUBSCRIBED:
            removed = self.registry.remove(frame.channel_id)
            if removed is not None:
                log_channel_event(self.EXCHANGE, frame.event, frame.channel_id, removed.kind.value, removed.symbol)
            return

        try:
            kind = ChannelKind(frame.channel)
        except ValueError:
            self.logger.debug(f"Ignoring ack for unsupported channel '{frame.channel}'")
            return

        self.registry.record(frame.channel_id, kind, frame.symbol)
        log_channel_event(self.EXCHANGE, frame.event, frame.channel_id, kind.value, frame.symbol)

    # ============================================
    # Data Frames
    # ============================================

    def _lookup(self, channel_id: int) -> Subscription:
        subscription = self.registry.resolve(channel_id)
        if subscription is None:
            raise UnknownChannelError(channel_id)
        return subscription

    def _handle_data(self, frame: DataFrame) -> None:
        subscription = self._lookup(frame.channel_id)

        if subscription.kind == ChannelKind.TRADES:
            trade = parse_trade(frame, subscription)
            if trade is not None:
                self.emitter.emit_trade(trade)

        elif subscription.kind == ChannelKind.CANDLES:
            candles = parse_candles(frame)
            if candles:
                self.emitter.emit_candles(candles)
