"""
Bitfinex WebSocket Client

This module owns the single streaming connection to the Bitfinex public
WebSocket API (v2). It handles:
- Connecting (idempotent) and starting exactly one receive loop
- Sending subscribe / unsubscribe control messages
- Feeding every inbound frame to the FrameRouter
- Teardown of socket, session and loop together on every exit path

There is no automatic reconnection: if the receive loop dies, the failure is
reported as FatalLoopError through wait_closed(), the fatal_error property and
the "errors" event topic, and the owner decides what to do.

WebSocket Documentation:
    https://docs.bitfinex.com/docs/ws-general

Usage:
    async with BitfinexWebSocketClient() as client:
        client.events.on_buy_trade(print)
        await client.subscribe_trades("tBTCUSD")
        await client.wait_closed()
"""

import aiohttp
import asyncio
import json
from typing import Any, Dict, Optional

from core.config import settings
from core.exceptions import FatalLoopError, TransportError
from core.logging import get_logger, log_websocket_event
from core.schemas import ChannelKind
from core.timeframes import period_in_sec_to_timeframe
from exchanges.bitfinex.router import FrameRouter
from exchanges.bitfinex.subscriptions import SubscriptionRegistry
from services.event_bus import MarketEventEmitter


class BitfinexWebSocketClient:
    """
    Async client for the Bitfinex public WebSocket.

    Attributes:
        url: WebSocket endpoint
        registry: Channel id -> Subscription mapping for this connection
        events: Emitter delivering trades (split by side) and candle batches
        session: aiohttp ClientSession used for the connection
        ws: Active WebSocket connection, None when disconnected

    Example:
        >>> client = BitfinexWebSocketClient()
        >>> client.events.on_candles(lambda batch: print(len(batch)))
        >>> await client.connect()
        >>> await client.subscribe_candles("tBTCUSD", 60)
        >>> ...
        >>> await client.disconnect()

    Notes:
        - subscribe_* returns once the request is sent; the channel becomes
          live when the server acknowledges it
        - unsubscribe_* for something that was never acknowledged is a no-op
    """

    EXCHANGE = "bitfinex"

    def __init__(
        self,
        url: Optional[str] = None,
        emitter: Optional[MarketEventEmitter] = None,
        heartbeat: Optional[int] = None,
        connect_timeout: Optional[int] = None
    ):
        """
        Initialize the client. No network activity happens until connect().

        Args:
            url: WebSocket URL (default: settings.bitfinex_ws_url)
            emitter: Event emitter to publish into (default: a new one)
            heartbeat: Seconds between client pings (default: settings.ws_heartbeat)
            connect_timeout: Handshake timeout in seconds (default: settings.ws_connect_timeout)
        """
        self.url = url or settings.bitfinex_ws_url
        self.heartbeat = heartbeat if heartbeat is not None else settings.ws_heartbeat
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.ws_connect_timeout

        self.registry = SubscriptionRegistry()
        self.events = emitter or MarketEventEmitter(max_queue_size=settings.event_queue_size)
        self.router = FrameRouter(self.registry, self.events)

        # Connection state
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._closing = asyncio.Event()
        self._connect_lock = asyncio.Lock()
        self._send_lock = asyncio.Lock()
        self._fatal_error: Optional[FatalLoopError] = None

        self.logger = get_logger(__name__)

    # ============================================
    # Context Manager
    # ============================================

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    # ============================================
    # Connection Lifecycle
    # ============================================

    @property
    def is_connected(self) -> bool:
        return (
            self.ws is not None
            and not self.ws.closed
            and self._receive_task is not None
            and not self._receive_task.done()
        )

    @property
    def fatal_error(self) -> Optional[FatalLoopError]:
        """The error that ended the last receive loop, if it ended abnormally."""
        return self._fatal_error

    async def connect(self) -> None:
        """
        Open the WebSocket and start the receive loop.

        Calling connect() on a connected client does nothing.

        Raises:
            TransportError: If the handshake fails or times out
        """
        async with self._connect_lock:
            if self.is_connected:
                return

            if self.session is None or self.session.closed:
                self.session = aiohttp.ClientSession()

            self.logger.info(f"Connecting to {self.url}")

            try:
                self.ws = await asyncio.wait_for(
                    self.session.ws_connect(self.url, heartbeat=self.heartbeat),
                    timeout=self.connect_timeout
                )
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                log_websocket_event(self.EXCHANGE, "error", details=f"connect failed: {e}")
                await self._release_transport()
                raise TransportError(f"Failed to connect to {self.url}: {e}") from e

            self._closing.clear()
            self._fatal_error = None
            self._receive_task = asyncio.create_task(self._receive_loop())
            self._receive_task.add_done_callback(self._retrieve_loop_result)
            log_websocket_event(self.EXCHANGE, "connected", details=self.url)

    async def disconnect(self) -> None:
        """
        Stop the receive loop and release the socket and session.

        Safe to call more than once and after a fatal loop error. The
        subscription registry is cleared: channel ids are per-connection.
        A connect() in progress finishes first and is then torn down.
        """
        async with self._connect_lock:
            self._closing.set()

            task = self._receive_task
            if task is not None and not task.done():
                task.cancel()
            if task is not None:
                # A fatal error stays available through fatal_error / wait_closed()
                await asyncio.gather(task, return_exceptions=True)

            await self._release_transport()
            self.registry.clear()
            log_websocket_event(self.EXCHANGE, "disconnected")

    async def wait_closed(self) -> None:
        """
        Wait until the receive loop ends.

        Cancelling the wait (e.g. a wait_for timeout) leaves the loop running.

        Raises:
            FatalLoopError: If the loop stopped because of an error rather
                than disconnect()
        """
        if self._receive_task is not None:
            await asyncio.wait({self._receive_task})
        if self._fatal_error is not None:
            raise self._fatal_error

    @staticmethod
    def _retrieve_loop_result(task: asyncio.Task) -> None:
        # Already logged and stored as fatal_error; mark the exception as retrieved
        if not task.cancelled():
            task.exception()

    async def _release_transport(self) -> None:
        ws, self.ws = self.ws, None
        if ws is not None and not ws.closed:
            await ws.close()
            self.logger.debug("WebSocket closed")

        session, self.session = self.session, None
        if session is not None and not session.closed:
            await session.close()
            self.logger.debug("Session closed")

    # ============================================
    # Receive Loop
    # ============================================

    async def _receive_loop(self) -> None:
        """
        Read frames until disconnect() or a failure.

        Cancellation and errors raised while disconnecting are a clean stop.
        Anything else becomes FatalLoopError: stored, logged, published on the
        "errors" topic and raised from the task.
        """
        ws = self.ws
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.router.route(msg.data)

                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise TransportError(f"WebSocket error: {ws.exception()}")

                else:
                    self.logger.debug(f"Received message type: {msg.type}")

            if not self._closing.is_set():
                raise TransportError(f"Connection closed by server (code={ws.close_code})")

        except asyncio.CancelledError:
            self.logger.info("WebSocket receive loop cancelled")

        except Exception as e:
            if self._closing.is_set():
                self.logger.debug(f"Receive loop stopped during disconnect: {e}")
            else:
                error = FatalLoopError(f"Receive loop failed: {e}")
                self._fatal_error = error
                log_websocket_event(self.EXCHANGE, "error", details=str(error))
                self.events.emit_error(error)
                raise error from e

        finally:
            await self._release_transport()
            self.logger.info(f"WebSocket receive loop stopped for {self.url}")

    # ============================================
    # Outbound Control Messages
    # ============================================

    async def _send(self, payload: Dict[str, Any]) -> None:
        async with self._send_lock:
            # Re-checked under the lock: disconnect() may run while a send waits
            ws = self.ws
            if ws is None or ws.closed:
                raise TransportError("WebSocket is not connected")
            try:
                await ws.send_str(json.dumps(payload))
            except (aiohttp.ClientError, ConnectionError) as e:
                raise TransportError(f"Failed to send {payload.get('event')}: {e}") from e

        self.logger.debug(f"Sent: {payload}")

    async def subscribe_trades(self, symbol: str) -> None:
        """
        Request the trades channel for a symbol (e.g., "tBTCUSD").

        Raises:
            TransportError: If not connected or the send fails
        """
        log_websocket_event(self.EXCHANGE, "subscribe", symbol, "channel=trades")
        await self._send({"event": "subscribe", "channel": ChannelKind.TRADES.value, "symbol": symbol})

    async def subscribe_candles(self, symbol: str, period_in_sec: int) -> None:
        """
        Request the candles channel for a symbol and period.

        Raises:
            InvalidArgumentError: If the period has no Bitfinex timeframe (checked before sending)
            TransportError: If not connected or the send fails
        """
        timeframe = period_in_sec_to_timeframe(period_in_sec)
        key = f"trade:{timeframe}:{symbol}"
        log_websocket_event(self.EXCHANGE, "subscribe", symbol, f"channel=candles key={key}")
        await self._send({"event": "subscribe", "channel": ChannelKind.CANDLES.value, "key": key})

    async def unsubscribe_trades(self, symbol: str) -> None:
        await self._unsubscribe(ChannelKind.TRADES, symbol)

    async def unsubscribe_candles(self, symbol: str) -> None:
        await self._unsubscribe(ChannelKind.CANDLES, symbol)

    async def _unsubscribe(self, kind: ChannelKind, symbol: str) -> None:
        channel_id = self.registry.find_by_kind_and_symbol(kind, symbol)
        if channel_id is None:
            self.logger.debug(f"No live {kind.value} channel for {symbol}; nothing to unsubscribe")
            return

        log_websocket_event(self.EXCHANGE, "unsubscribe", symbol, f"channel={kind.value} chanId={channel_id}")
        await self._send({"event": "unsubscribe", "chanId": channel_id})
        self.registry.remove(channel_id)
