"""
Normalized Data Schemas

This module defines Pydantic models for the market data handled by the connector.

Models:
    - Trade: A single executed trade (REST history or live stream)
    - Candle: One candlestick (REST history or live stream)
    - Ticker: Top-of-book and 24h statistics for one symbol
    - Subscription: What a server-assigned WebSocket channel id refers to
    - TradeHistoryQuery / CandleHistoryQuery: Validated options for REST history calls

All prices, amounts and volumes are Decimal so exchange values are kept exactly.
Timestamps are timezone-aware UTC datetimes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from core.timeframes import period_in_sec_to_timeframe


# ============================================
# Enumerations
# ============================================

class ChannelKind(str, Enum):
    """Public WebSocket channels the connector understands."""

    TRADES = "trades"
    CANDLES = "candles"


class TradeSide(str, Enum):
    """Aggressor side of a trade, derived from the sign of the raw amount."""

    BUY = "buy"
    SELL = "sell"


# ============================================
# Trade Schema
# ============================================

class Trade(BaseModel):
    """
    Executed Trade Data Model

    Bitfinex does not send the side explicitly: a positive amount is a buy,
    a negative amount is a sell. The model stores the absolute amount together
    with the derived side.

    Attributes:
        id: Exchange trade id
        time: Execution time in UTC
        amount: Traded quantity (always >= 0)
        price: Execution price
        side: BUY or SELL
        pair: Symbol the trade belongs to (e.g., "tBTCUSD")

    Example:
        >>> trade = Trade(
        ...     id="101",
        ...     time=datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc),
        ...     amount=Decimal("0.5"),
        ...     price=Decimal("42000"),
        ...     side=TradeSide.BUY,
        ...     pair="tBTCUSD"
        ... )
    """

    id: str = Field(..., description="Exchange trade id")
    time: datetime = Field(..., description="Execution time in UTC")
    amount: Decimal = Field(..., ge=0, description="Absolute traded amount")
    price: Decimal = Field(..., description="Execution price")
    side: TradeSide = Field(..., description="Trade side derived from amount sign")
    pair: str = Field(..., description="Trading pair symbol")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "101",
                "time": "2023-11-14T22:13:20Z",
                "amount": "0.5",
                "price": "42000.0",
                "side": "buy",
                "pair": "tBTCUSD"
            }
        }
    )

    @classmethod
    def from_signed_amount(
        cls,
        trade_id: str,
        time: datetime,
        signed_amount: Decimal,
        price: Decimal,
        pair: str
    ) -> "Trade":
        """Build a Trade from the exchange's signed amount representation."""
        side = TradeSide.BUY if signed_amount > 0 else TradeSide.SELL
        return cls(
            id=trade_id,
            time=time,
            amount=abs(signed_amount),
            price=price,
            side=side,
            pair=pair
        )


# ============================================
# Candle Schema
# ============================================

class Candle(BaseModel):
    """
    Candlestick Data Model

    Note that on the wire Bitfinex orders candle rows as
    [MTS, OPEN, CLOSE, HIGH, LOW, VOLUME]; the model uses named fields, so the
    order only matters to the parser.
    """

    open_time: datetime = Field(..., description="Candle open time in UTC")
    open: Decimal = Field(..., description="First trade price in the period")
    high: Decimal = Field(..., description="Highest price in the period")
    low: Decimal = Field(..., description="Lowest price in the period")
    close: Decimal = Field(..., description="Last trade price in the period")
    volume: Decimal = Field(..., ge=0, description="Traded volume in base asset")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "open_time": "2023-11-14T22:13:20Z",
                "open": "100",
                "high": "105",
                "low": "99",
                "close": "102",
                "volume": "10"
            }
        }
    )


# ============================================
# Ticker Schema
# ============================================

class Ticker(BaseModel):
    """
    Ticker Data Model

    Attributes:
        bid: Highest bid price
        bid_size: Sum of the 25 highest bid sizes
        ask: Lowest ask price
        ask_size: Sum of the 25 lowest ask sizes
        daily_change: Price change over the last 24h
        daily_change_relative: Relative 24h change (0.01 = 1%)
        last_price: Price of the last trade
        volume: 24h volume
        high: 24h high
        low: 24h low
    """

    bid: Decimal
    bid_size: Decimal
    ask: Decimal
    ask_size: Decimal
    daily_change: Decimal
    daily_change_relative: Decimal
    last_price: Decimal
    volume: Decimal
    high: Decimal
    low: Decimal

    model_config = ConfigDict(frozen=True)


# ============================================
# Subscription Descriptor
# ============================================

class Subscription(BaseModel):
    """What a server-assigned channel id currently maps to."""

    channel_id: int
    kind: ChannelKind
    symbol: str

    model_config = ConfigDict(frozen=True)


# ============================================
# REST Query Options
# ============================================

class TradeHistoryQuery(BaseModel):
    """
    Options for trade history requests.

    Attributes:
        limit: Number of trades to return (1..10000, default 125)
        start: Only trades at or after this time
        end: Only trades at or before this time
        sort_ascending: Oldest first when True, newest first otherwise
    """

    limit: int = Field(default=125, ge=1, le=10_000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    sort_ascending: bool = False

    @model_validator(mode="after")
    def check_range(self) -> "TradeHistoryQuery":
        if self.start is not None and self.end is not None and self.start >= self.end:
            raise ValueError("'start' must be earlier than 'end'")
        return self


class CandleHistoryQuery(BaseModel):
    """
    Options for candle history requests.

    Attributes:
        period_in_sec: Candle length in seconds, must map to a Bitfinex timeframe
        start: Only candles opening at or after this time
        end: Only candles opening at or before this time
        limit: Number of candles (1..10000); exchange default when None
        sort_ascending: Oldest first when True, newest first otherwise
    """

    period_in_sec: int
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1, le=10_000)
    sort_ascending: bool = False

    @field_validator("period_in_sec")
    @classmethod
    def check_period(cls, v: int) -> int:
        period_in_sec_to_timeframe(v)
        return v

    @model_validator(mode="after")
    def check_range(self) -> "CandleHistoryQuery":
        if self.start is not None and self.end is not None and self.start >= self.end:
            raise ValueError("'start' must be earlier than 'end'")
        return self

    @property
    def timeframe(self) -> str:
        return period_in_sec_to_timeframe(self.period_in_sec)
