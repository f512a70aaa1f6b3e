"""
Connector Interfaces: Abstract Contracts for Market Data Access

Two contracts are defined here:

    RestConnector       request/response history and ticker calls
    WebSocketConnector  live trade/candle subscriptions with event callbacks

Services (e.g., the portfolio helper) and the HTTP API depend on these
interfaces, not on the Bitfinex implementation, so tests can swap in fakes.

Example:
    class BitfinexConnector(RestConnector, WebSocketConnector):
        async def get_ticker(self, pair):
            ...
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from core.schemas import Candle, Ticker, Trade


TradeCallback = Callable[[Trade], None]
CandleBatchCallback = Callable[[Sequence[Candle]], None]


class RestConnector(ABC):
    """
    Request/response market data.

    Abstract Methods:
        - get_new_trades: Recent trades for a pair
        - get_candle_series: Historical candles for a pair and period
        - get_ticker: Current ticker for a pair
    """

    @abstractmethod
    async def get_new_trades(
        self,
        pair: str,
        max_count: int = 125,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sort_ascending: bool = False
    ) -> List[Trade]:
        """
        Fetch recent trades.

        Raises:
            InvalidArgumentError: If max_count or the time range is invalid
            BitfinexApiError: If the exchange rejects the request
        """
        pass

    @abstractmethod
    async def get_candle_series(
        self,
        pair: str,
        period_in_sec: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        count: Optional[int] = None
    ) -> List[Candle]:
        """
        Fetch historical candles.

        Raises:
            InvalidArgumentError: If the period, count or time range is invalid
            BitfinexApiError: If the exchange rejects the request
        """
        pass

    @abstractmethod
    async def get_ticker(self, pair: str) -> Ticker:
        """
        Fetch the current ticker.

        Raises:
            BitfinexApiError: If the pair is unknown (code 10020) or the call fails
        """
        pass

    async def health_check(self) -> bool:
        """
        Check if the exchange API is reachable.

        Default implementation assumes healthy; connectors override it.
        """
        return True


class WebSocketConnector(ABC):
    """
    Live market data over a single streaming connection.

    Subscribing does not wait for the server acknowledgement; events start
    flowing to registered callbacks once the channel is confirmed.
    """

    @abstractmethod
    async def subscribe_trades(self, pair: str) -> None:
        pass

    @abstractmethod
    async def unsubscribe_trades(self, pair: str) -> None:
        pass

    @abstractmethod
    async def subscribe_candles(self, pair: str, period_in_sec: int) -> None:
        pass

    @abstractmethod
    async def unsubscribe_candles(self, pair: str) -> None:
        pass

    @abstractmethod
    def on_buy_trade(self, callback: TradeCallback) -> None:
        pass

    @abstractmethod
    def on_sell_trade(self, callback: TradeCallback) -> None:
        pass

    @abstractmethod
    def on_candles(self, callback: CandleBatchCallback) -> None:
        pass
