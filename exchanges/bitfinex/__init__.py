"""
Bitfinex Exchange Connector

This module combines the REST client and the WebSocket client behind the
RestConnector and WebSocketConnector interfaces.

Endpoints Used:
    REST (https://api-pub.bitfinex.com/v2):
        - GET /trades/{symbol}/hist - Recent trades
        - GET /candles/trade:{timeframe}:{symbol}/hist - Historical candles
        - GET /ticker/{symbol} - Current ticker
        - GET /platform/status - Health check

    WebSocket (wss://api-pub.bitfinex.com/ws/2):
        - trades channel:  {"event": "subscribe", "channel": "trades", "symbol": ...}
        - candles channel: {"event": "subscribe", "channel": "candles", "key": "trade:1m:..."}

Package Structure:
    exchanges/bitfinex/
    ├── __init__.py          # This file (BitfinexConnector class)
    ├── api_client.py        # REST client
    ├── ws_client.py         # WebSocket connection manager
    ├── router.py            # Frame routing: registry, parsers, emitter
    ├── frames.py            # Frame decoder
    ├── parsers.py           # Trade / candle parsers
    └── subscriptions.py     # Channel id registry
"""

from datetime import datetime
from typing import List, Optional

from core.connector_interface import (
    CandleBatchCallback,
    RestConnector,
    TradeCallback,
    WebSocketConnector,
)
from core.logging import logger
from core.schemas import Candle, Ticker, Trade
from core.timeframes import period_in_sec_to_timeframe
from .api_client import BitfinexAPIClient
from .ws_client import BitfinexWebSocketClient


class BitfinexConnector(RestConnector, WebSocketConnector):
    """
    Bitfinex market data connector (REST + WebSocket).

    Attributes:
        name: Exchange identifier ("bitfinex")
        rest: REST API client
        ws: WebSocket client (connected lazily on first subscribe)

    Example:
        >>> async with BitfinexConnector() as connector:
        ...     connector.on_buy_trade(lambda t: print("buy", t.amount, t.price))
        ...     await connector.subscribe_trades("tBTCUSD")
        ...     ticker = await connector.get_ticker("tBTCUSD")
    """

    name = "bitfinex"

    def __init__(
        self,
        rest_client: Optional[BitfinexAPIClient] = None,
        ws_client: Optional[BitfinexWebSocketClient] = None
    ):
        self.rest = rest_client or BitfinexAPIClient()
        self.ws = ws_client or BitfinexWebSocketClient()
        self._started = False

        logger.debug(f"BitfinexConnector created (rest={self.rest.base_url}, ws={self.ws.url})")

    # ============================================
    # Lifecycle
    # ============================================

    async def initialize(self) -> None:
        """Open the REST session. The WebSocket connects on first subscribe."""
        if self._started:
            return
        logger.info("Initializing Bitfinex connector...")
        await self.rest.__aenter__()
        self._started = True

    async def shutdown(self) -> None:
        """Close the WebSocket (if open) and the REST session."""
        logger.info("Shutting down Bitfinex connector...")
        await self.ws.disconnect()
        if self._started:
            await self.rest.__aexit__(None, None, None)
            self._started = False
        logger.info("Bitfinex connector shut down")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def health_check(self) -> bool:
        """True if the Bitfinex platform reports itself operative."""
        try:
            return await self.rest.get_platform_status()
        except Exception as e:
            logger.error(f"Bitfinex health check failed: {e}")
            return False

    # ============================================
    # REST API Methods
    # ============================================

    async def get_new_trades(
        self,
        pair: str,
        max_count: int = 125,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sort_ascending: bool = False
    ) -> List[Trade]:
        return await self.rest.get_trades(pair, max_count, start, end, sort_ascending)

    async def get_candle_series(
        self,
        pair: str,
        period_in_sec: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        count: Optional[int] = None
    ) -> List[Candle]:
        return await self.rest.get_candles(pair, period_in_sec, start, end, count)

    async def get_ticker(self, pair: str) -> Ticker:
        return await self.rest.get_ticker(pair)

    # ============================================
    # WebSocket Methods
    # ============================================

    async def subscribe_trades(self, pair: str) -> None:
        await self.ws.connect()
        await self.ws.subscribe_trades(pair)

    async def unsubscribe_trades(self, pair: str) -> None:
        await self.ws.unsubscribe_trades(pair)

    async def subscribe_candles(self, pair: str, period_in_sec: int) -> None:
        period_in_sec_to_timeframe(period_in_sec)  # reject bad periods before opening the socket
        await self.ws.connect()
        await self.ws.subscribe_candles(pair, period_in_sec)

    async def unsubscribe_candles(self, pair: str) -> None:
        await self.ws.unsubscribe_candles(pair)

    def on_buy_trade(self, callback: TradeCallback) -> None:
        self.ws.events.on_buy_trade(callback)

    def on_sell_trade(self, callback: TradeCallback) -> None:
        self.ws.events.on_sell_trade(callback)

    def on_candles(self, callback: CandleBatchCallback) -> None:
        self.ws.events.on_candles(callback)


__all__ = ["BitfinexConnector", "BitfinexAPIClient", "BitfinexWebSocketClient"]
