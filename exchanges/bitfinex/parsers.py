"""
Trade and Candle Parsers

Turn decoded Bitfinex payloads into Trade / Candle models. Shape problems are
never raised: a frame (or a single candle row) that does not match is skipped
and the caller gets None / fewer candles.

Wire formats:
    Trade frame:  [CHAN_ID, "te" | "tu", [ID, MTS, AMOUNT, PRICE]]
    Candle frame: [CHAN_ID, [MTS, OPEN, CLOSE, HIGH, LOW, VOLUME]]
                  [CHAN_ID, [[MTS, OPEN, CLOSE, HIGH, LOW, VOLUME], ...]]

The same row layouts are returned by the REST history endpoints, so the row
helpers are shared with the API client.
"""

from decimal import Decimal
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from core.schemas import Candle, Subscription, Trade
from core.utils.time import to_utc_datetime
from exchanges.bitfinex.frames import DataFrame


# "te" = trade executed, "tu" = trade updated
TRADE_MESSAGE_TAGS = ("te", "tu")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool)


def parse_trade_row(row: Any, pair: str) -> Optional[Trade]:
    """
    Build a Trade from [ID, MTS, AMOUNT, PRICE].

    Returns:
        Trade, or None if the row is malformed
    """
    if not isinstance(row, list) or len(row) != 4:
        return None

    trade_id, mts, amount, price = row
    if not all(is_number(v) for v in (trade_id, mts, amount, price)):
        return None

    try:
        return Trade.from_signed_amount(
            trade_id=str(trade_id),
            time=to_utc_datetime(mts),
            signed_amount=Decimal(amount),
            price=Decimal(price),
            pair=pair
        )
    except (ValidationError, ValueError):
        return None


def parse_candle_row(row: Any) -> Optional[Candle]:
    """
    Build a Candle from [MTS, OPEN, CLOSE, HIGH, LOW, VOLUME].

    Returns:
        Candle, or None if the row is malformed
    """
    if not isinstance(row, list) or len(row) != 6 or not all(is_number(v) for v in row):
        return None

    mts, open_, close, high, low, volume = row
    try:
        return Candle(
            open_time=to_utc_datetime(mts),
            open=Decimal(open_),
            high=Decimal(high),
            low=Decimal(low),
            close=Decimal(close),
            volume=Decimal(volume)
        )
    except (ValidationError, ValueError):
        return None


def parse_trade(frame: DataFrame, subscription: Subscription) -> Optional[Trade]:
    """
    Decode a trade channel frame.

    Args:
        frame: Data frame already routed to a trade channel
        subscription: Descriptor of that channel (supplies the pair)

    Returns:
        One Trade for "te"/"tu" messages, None for anything else
        (heartbeats, snapshots, malformed frames)

    Example:
        >>> parse_trade(DataFrame(5, [5, "te", [101, 1700000000000, Decimal("0.5"), Decimal("42000.0")]]), sub)
        Trade(id='101', ..., side=<TradeSide.BUY: 'buy'>, pair='tBTCUSD')
    """
    if len(frame) < 3 or frame[1] not in TRADE_MESSAGE_TAGS:
        return None

    return parse_trade_row(frame[2], subscription.symbol)


def parse_candle_rows(rows: Sequence[Any]) -> List[Candle]:
    """Parse a list of candle rows, skipping malformed ones and keeping order."""
    candles = []
    for row in rows:
        candle = parse_candle_row(row)
        if candle is not None:
            candles.append(candle)
    return candles


def parse_candles(frame: DataFrame) -> List[Candle]:
    """
    Decode a candle channel frame.

    The first frame after subscribing is a snapshot (list of rows); later
    frames carry a single row. Both are returned as a list.

    Returns:
        Candles in wire order; empty when nothing usable was found
    """
    if len(frame) < 2 or not isinstance(frame[1], list):
        return []

    payload = frame[1]
    if not payload:
        return []

    # A snapshot may start with a malformed entry; any nested row marks a batch
    if any(isinstance(row, list) for row in payload):
        return parse_candle_rows(payload)

    candle = parse_candle_row(payload)
    return [candle] if candle is not None else []
