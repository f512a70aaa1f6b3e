"""
Synchronous Pub/Sub Event Bus

This module provides the fan-out point between the WebSocket receive loop and
consumers of market events. Publishing never awaits: callbacks run inline and
queue subscribers receive events through put_nowait, so a slow consumer can
never stall the receive loop.

Two ways to consume a topic:
    - add_listener(topic, callback): callback(event) is invoked in publish order
    - subscribe(topic): returns an asyncio.Queue fed with every event

Topics used by the connector:
    trades.buy, trades.sell  Trade events split by side
    candles                  tuple of Candle objects (one batch per frame)
    errors                   FatalLoopError when the receive loop dies
"""

import asyncio
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Sequence

from core.exceptions import FatalLoopError
from core.logging import get_logger
from core.schemas import Candle, Trade, TradeSide


BUY_TRADES = "trades.buy"
SELL_TRADES = "trades.sell"
CANDLES = "candles"
ERRORS = "errors"


class EventBus:
    """
    Topic-based pub/sub with synchronous delivery.

    - Each queue subscriber gets its own asyncio.Queue; full queues drop events.
    - A listener that raises is logged and skipped; other listeners still run.
    - Registration is guarded by a lock so it may happen from any thread.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._listeners: DefaultDict[str, List[Callable[[Any], None]]] = defaultdict(list)
        self._queues: DefaultDict[str, List[asyncio.Queue]] = defaultdict(list)
        self._max_queue_size = max_queue_size
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    def add_listener(self, topic: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            self._listeners[topic].append(callback)
        self._logger.debug(f"Listener added to topic '{topic}'")

    def remove_listener(self, topic: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            if callback in self._listeners.get(topic, []):
                self._listeners[topic].remove(callback)
        self._logger.debug(f"Listener removed from topic '{topic}'")

    def subscribe(self, topic: str) -> asyncio.Queue:
        """
        Subscribe to a topic. Returns an asyncio.Queue for receiving events.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        with self._lock:
            self._queues[topic].append(queue)
        self._logger.debug(f"Queue subscriber added to topic '{topic}'. total={len(self._queues[topic])}")
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """
        Unsubscribe a queue from a topic.
        """
        with self._lock:
            if queue in self._queues.get(topic, []):
                self._queues[topic].remove(queue)
        self._logger.debug(f"Queue subscriber removed from topic '{topic}'")

    def publish(self, topic: str, event: Any) -> None:
        """
        Deliver an event to every listener and queue of a topic.
        """
        with self._lock:
            listeners = list(self._listeners.get(topic, []))
            queues = list(self._queues.get(topic, []))

        for callback in listeners:
            try:
                callback(event)
            except Exception:
                self._logger.exception(f"Listener for topic '{topic}' raised")

        for q in queues:
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")


class MarketEventEmitter(EventBus):
    """
    Event bus with typed helpers for trades, candle batches and loop failures.

    Example:
        >>> emitter = MarketEventEmitter()
        >>> emitter.on_buy_trade(lambda t: print(t.price))
        >>> emitter.emit_trade(trade)
    """

    def emit_trade(self, trade: Trade) -> None:
        topic = BUY_TRADES if trade.side == TradeSide.BUY else SELL_TRADES
        self.publish(topic, trade)

    def emit_candles(self, candles: Sequence[Candle]) -> None:
        self.publish(CANDLES, tuple(candles))

    def emit_error(self, error: FatalLoopError) -> None:
        self.publish(ERRORS, error)

    def on_buy_trade(self, callback: Callable[[Trade], None]) -> None:
        self.add_listener(BUY_TRADES, callback)

    def on_sell_trade(self, callback: Callable[[Trade], None]) -> None:
        self.add_listener(SELL_TRADES, callback)

    def on_candles(self, callback: Callable[[Sequence[Candle]], None]) -> None:
        self.add_listener(CANDLES, callback)

    def on_error(self, callback: Callable[[FatalLoopError], None]) -> None:
        self.add_listener(ERRORS, callback)
