"""
Bitfinex REST API Client

This module provides an async HTTP client for the Bitfinex public REST API (v2).
It handles:
- HTTP GET requests with a per-request timeout
- Exchange error bodies (["error", <code>, <message>]) -> BitfinexApiError
- Validation of request options before any network call
- Normalization of responses to our schemas

There is no retry or rate-limit handling; a failed call raises.

API Documentation:
    https://docs.bitfinex.com/reference/rest-public-trades
    https://docs.bitfinex.com/reference/rest-public-candles
    https://docs.bitfinex.com/reference/rest-public-ticker

Usage:
    async with BitfinexAPIClient() as client:
        trades = await client.get_trades("tBTCUSD", limit=50)
        candles = await client.get_candles("tBTCUSD", 3600, limit=24)
        ticker = await client.get_ticker("tBTCUSD")
"""

import aiohttp
import asyncio
import json
from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.config import settings
from core.exceptions import BitfinexApiError, InvalidArgumentError, ProtocolDecodeError, TransportError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import Candle, CandleHistoryQuery, Ticker, Trade, TradeHistoryQuery
from core.utils.time import datetime_to_timestamp
from exchanges.bitfinex.parsers import is_number, parse_candle_row, parse_trade_row


# Code Bitfinex uses for an unknown symbol
INVALID_SYMBOL_CODE = 10020

QueryT = TypeVar("QueryT", bound=BaseModel)

_loads = partial(json.loads, parse_float=Decimal)


def validate_query(model: Type[QueryT], **values: Any) -> QueryT:
    """
    Build a query options model, turning validation failures into InvalidArgumentError.

    Example:
        >>> validate_query(TradeHistoryQuery, limit=0)
        Traceback (most recent call last):
        ...
        InvalidArgumentError: limit: Input should be greater than or equal to 1
    """
    try:
        return model(**values)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'query'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidArgumentError(details) from e


def _is_error_body(data: Any) -> bool:
    return isinstance(data, list) and len(data) >= 2 and data[0] == "error"


class BitfinexAPIClient:
    """
    Async HTTP client for the Bitfinex public REST API.

    Attributes:
        base_url: REST base URL (e.g., "https://api-pub.bitfinex.com/v2")
        timeout: Request timeout in seconds
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with BitfinexAPIClient() as client:
        ...     ticker = await client.get_ticker("tBTCUSD")
        ...     print(ticker.last_price)

    Notes:
        - Uses context manager for automatic session cleanup
        - All timestamps are UTC datetimes; numbers are Decimal
        - Candle rows use the same [MTS, OPEN, CLOSE, HIGH, LOW, VOLUME] layout as the WebSocket
    """

    EXCHANGE = "bitfinex"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        self.base_url = (base_url or settings.bitfinex_rest_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug("BitfinexAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.logger.debug("BitfinexAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a GET request and return the decoded JSON body.

        Args:
            path: API endpoint path (e.g., "/ticker/tBTCUSD")
            params: Optional query parameters (None values are dropped)

        Returns:
            Decoded JSON response (floats as Decimal)

        Raises:
            RuntimeError: If the session is not initialized
            BitfinexApiError: If the body is an exchange error
            TransportError: On connection failures, timeouts, non-JSON bodies
                or non-200 statuses without an exchange error body
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        log_api_request(self.EXCHANGE, path, query)
        started = asyncio.get_running_loop().time()

        try:
            async with self.session.get(
                url,
                params=query,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                status = resp.status
                try:
                    data = await resp.json(loads=_loads, content_type=None)
                except ValueError as e:
                    raise TransportError(f"HTTP {status} on {path}: response is not JSON") from e

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Request failed on {path}: {e}")
            raise TransportError(f"Request to {url} failed: {e}") from e

        log_api_response(self.EXCHANGE, path, status, asyncio.get_running_loop().time() - started)

        if _is_error_body(data):
            code = int(data[1]) if is_number(data[1]) else 0
            message = str(data[2]) if len(data) > 2 else ""
            self.logger.warning(f"Bitfinex error on {path}: {code} {message}")
            raise BitfinexApiError(error_code=code, message=message, status=status)

        if status != 200:
            raise TransportError(f"HTTP {status} on {path}")

        return data

    # ============================================
    # API Methods
    # ============================================

    async def get_trades(
        self,
        pair: str,
        limit: int = 125,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sort_ascending: bool = False
    ) -> List[Trade]:
        """
        Fetch recent trades for a pair.

        Args:
            pair: Trading pair (e.g., "tBTCUSD")
            limit: Number of trades (1..10000, default 125)
            start: Optional earliest trade time (datetime)
            end: Optional latest trade time (datetime)
            sort_ascending: Oldest first if True (default: newest first)

        Returns:
            List of Trade objects

        Raises:
            InvalidArgumentError: If limit or the time range is invalid

        Bitfinex Endpoint:
            GET /trades/{pair}/hist

        Response Format:
            [[ID, MTS, AMOUNT, PRICE], ...]   AMOUNT < 0 means sell
        """
        query = validate_query(
            TradeHistoryQuery, limit=limit, start=start, end=end, sort_ascending=sort_ascending
        )

        params = {
            "limit": query.limit,
            "sort": 1 if query.sort_ascending else -1,
            "start": datetime_to_timestamp(query.start, milliseconds=True) if query.start else None,
            "end": datetime_to_timestamp(query.end, milliseconds=True) if query.end else None,
        }

        self.logger.info(f"Fetching trades: {pair} (limit={query.limit})")
        data = await self._get(f"/trades/{pair}/hist", params)
        if not isinstance(data, list):
            raise ProtocolDecodeError(f"Unexpected trades response for {pair}", data)

        trades = [trade for trade in (parse_trade_row(row, pair) for row in data) if trade is not None]
        if len(trades) != len(data):
            self.logger.warning(f"Skipped {len(data) - len(trades)} malformed trade rows for {pair}")

        self.logger.info(f"Fetched {len(trades)} trades for {pair}")
        return trades

    async def get_candles(
        self,
        pair: str,
        period_in_sec: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
        sort_ascending: bool = False
    ) -> List[Candle]:
        """
        Fetch historical candles.

        Args:
            pair: Trading pair (e.g., "tBTCUSD")
            period_in_sec: Candle length in seconds (60, 300, ..., 2592000)
            start: Optional earliest candle time (datetime)
            end: Optional latest candle time (datetime)
            limit: Optional number of candles (1..10000)
            sort_ascending: Oldest first if True (default: newest first)

        Returns:
            List of Candle objects

        Raises:
            InvalidArgumentError: If the period, limit or time range is invalid

        Bitfinex Endpoint:
            GET /candles/trade:{timeframe}:{pair}/hist

        Response Format:
            [[MTS, OPEN, CLOSE, HIGH, LOW, VOLUME], ...]
        """
        query = validate_query(
            CandleHistoryQuery,
            period_in_sec=period_in_sec,
            start=start,
            end=end,
            limit=limit,
            sort_ascending=sort_ascending
        )

        params = {
            "limit": query.limit,
            "sort": 1 if query.sort_ascending else -1,
            "start": datetime_to_timestamp(query.start, milliseconds=True) if query.start else None,
            "end": datetime_to_timestamp(query.end, milliseconds=True) if query.end else None,
        }

        self.logger.info(f"Fetching candles: {pair} {query.timeframe} (limit={query.limit})")
        data = await self._get(f"/candles/trade:{query.timeframe}:{pair}/hist", params)
        if not isinstance(data, list):
            raise ProtocolDecodeError(f"Unexpected candles response for {pair}", data)

        candles = [candle for candle in (parse_candle_row(row) for row in data) if candle is not None]
        if len(candles) != len(data):
            self.logger.warning(f"Skipped {len(data) - len(candles)} malformed candle rows for {pair}")

        self.logger.info(f"Fetched {len(candles)} candles for {pair}")
        return candles

    async def get_ticker(self, pair: str) -> Ticker:
        """
        Fetch the current ticker for a pair.

        Returns:
            Ticker object

        Raises:
            BitfinexApiError: Code 10020 if the pair is unknown
            ProtocolDecodeError: If the response does not have the ticker layout

        Bitfinex Endpoint:
            GET /ticker/{pair}

        Response Format:
            [BID, BID_SIZE, ASK, ASK_SIZE, DAILY_CHANGE, DAILY_CHANGE_RELATIVE,
             LAST_PRICE, VOLUME, HIGH, LOW]
        """
        self.logger.info(f"Fetching ticker: {pair}")
        data = await self._get(f"/ticker/{pair}")

        if data == []:
            raise BitfinexApiError(error_code=INVALID_SYMBOL_CODE, message=f"Invalid pair: {pair}")

        if not isinstance(data, list) or len(data) < 10 or not all(is_number(v) for v in data[:10]):
            raise ProtocolDecodeError(f"Unexpected ticker response for {pair}", data)

        values = [Decimal(v) for v in data[:10]]
        return Ticker(
            bid=values[0],
            bid_size=values[1],
            ask=values[2],
            ask_size=values[3],
            daily_change=values[4],
            daily_change_relative=values[5],
            last_price=values[6],
            volume=values[7],
            high=values[8],
            low=values[9]
        )

    async def get_platform_status(self) -> bool:
        """
        Check whether the Bitfinex platform is operative.

        Bitfinex Endpoint:
            GET /platform/status  ->  [1] operative, [0] maintenance
        """
        data = await self._get("/platform/status")
        return isinstance(data, list) and bool(data) and data[0] == 1
