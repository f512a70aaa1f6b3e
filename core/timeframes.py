"""
Candle Timeframe Helper

Bitfinex encodes candle periods as short tokens ("1m", "1h", "1D", ...).
Callers work in seconds; this module maps one to the other.
"""

from typing import Dict

from core.exceptions import InvalidArgumentError


PERIOD_TO_TIMEFRAME: Dict[int, str] = {
    60: "1m",
    300: "5m",
    900: "15m",
    1_800: "30m",
    3_600: "1h",
    10_800: "3h",
    21_600: "6h",
    43_200: "12h",
    86_400: "1D",
    604_800: "1W",
    1_209_600: "14D",
    2_592_000: "1M",
}


def period_in_sec_to_timeframe(period_in_sec: int) -> str:
    """
    Convert a candle period in seconds to the Bitfinex timeframe token.

    Args:
        period_in_sec: Candle length in seconds (e.g., 3600)

    Returns:
        Timeframe token (e.g., "1h")

    Raises:
        InvalidArgumentError: If the period is not one Bitfinex supports

    Example:
        >>> period_in_sec_to_timeframe(86_400)
        '1D'
    """
    # bool is an int subclass; True would otherwise look like period 1
    if isinstance(period_in_sec, bool) or not isinstance(period_in_sec, int):
        raise InvalidArgumentError(f"Unsupported period: {period_in_sec!r} sec")

    try:
        return PERIOD_TO_TIMEFRAME[period_in_sec]
    except KeyError:
        raise InvalidArgumentError(f"Unsupported period: {period_in_sec} sec") from None
