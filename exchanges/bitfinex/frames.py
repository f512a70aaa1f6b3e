"""
Bitfinex WebSocket Frame Decoder

Every inbound text message is one of:

    Control frame (JSON object):
        {"event": "subscribed", "chanId": 5, "channel": "trades", "symbol": "tBTCUSD"}
        {"event": "subscribed", "chanId": 7, "channel": "candles", "key": "trade:1m:tBTCUSD"}
        {"event": "unsubscribed", "chanId": 5, "status": "OK"}
        {"event": "info", ...} / {"event": "error", ...} / ...

    Data frame (JSON array, first element is the channel id):
        [5, "te", [101, 1700000000000, 0.5, 42000.0]]
        [7, [[1700000000000, 100, 102, 105, 99, 10], ...]]
        [5, "hb"]

decode_frame() classifies a message without looking at any state; the router
decides what to do with the result. Floats are decoded as Decimal.
"""

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Union

from core.exceptions import ProtocolDecodeError


SUBSCRIBED = "subscribed"
UNSUBSCRIBED = "unsubscribed"
ERROR = "error"


@dataclass(frozen=True)
class ControlFrame:
    """Subscription state change reported by the server."""

    event: str
    channel_id: int
    channel: Optional[str] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class DataFrame:
    """Market data for a previously acknowledged channel."""

    channel_id: int
    payload: list

    def __len__(self) -> int:
        return len(self.payload)

    def __getitem__(self, index):
        return self.payload[index]


@dataclass(frozen=True)
class ServerError:
    """An {"event": "error"} message, e.g. a rejected subscribe."""

    code: Optional[int]
    message: str


Frame = Union[ControlFrame, DataFrame, ServerError]


def is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def symbol_from_key(key: str) -> str:
    """
    Candle channel keys look like "trade:<timeframe>:<symbol>".

    Example:
        >>> symbol_from_key("trade:1m:tBTCUSD")
        'tBTCUSD'
    """
    return key.rsplit(":", 1)[-1]


def _decode_control(message: dict) -> Optional[Frame]:
    event = message.get("event")

    if event == ERROR:
        return ServerError(code=message.get("code"), message=str(message.get("msg", "")))

    if event not in (SUBSCRIBED, UNSUBSCRIBED):
        return None

    channel_id = message.get("chanId")
    if not is_integer(channel_id):
        raise ProtocolDecodeError(f"'{event}' event without integer chanId", message)

    if event == UNSUBSCRIBED:
        return ControlFrame(event=event, channel_id=channel_id)

    channel = message.get("channel")
    key = message.get("key")
    if channel == "candles" and isinstance(key, str):
        symbol = symbol_from_key(key)
    else:
        symbol = message.get("symbol")

    if not isinstance(channel, str) or not isinstance(symbol, str) or not symbol:
        raise ProtocolDecodeError("'subscribed' event without channel or symbol", message)

    return ControlFrame(event=event, channel_id=channel_id, channel=channel, symbol=symbol)


def decode_frame(text: str) -> Optional[Frame]:
    """
    Parse and classify one WebSocket text message.

    Args:
        text: Raw message text

    Returns:
        ControlFrame, DataFrame or ServerError; None for shapes we ignore
        (heartbeats on the connection level, info events, short arrays)

    Raises:
        ProtocolDecodeError: Invalid JSON, or a control event missing required fields
    """
    try:
        message = json.loads(text, parse_float=Decimal)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolDecodeError(f"Invalid JSON: {e}", str(text)[:100]) from e

    if isinstance(message, dict):
        return _decode_control(message)

    if isinstance(message, list) and len(message) >= 2 and is_integer(message[0]):
        return DataFrame(channel_id=message[0], payload=message)

    return None
