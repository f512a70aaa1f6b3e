"""
Time Utilities

Bitfinex timestamps are milliseconds since the Unix epoch (MTS fields, e.g.
1700000000000). Our schemas use timezone-aware UTC datetimes, so these helpers
convert in both directions without going through floats.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Union


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_utc_datetime(timestamp_ms: Union[int, Decimal]) -> datetime:
    """
    Convert a millisecond timestamp to a UTC datetime.

    Args:
        timestamp_ms: Unix timestamp in milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or out of range

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime(1704110400123)
        datetime.datetime(2024, 1, 1, 12, 0, 0, 123000, tzinfo=datetime.timezone.utc)
    """
    if timestamp_ms < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp_ms}")

    # timedelta arithmetic keeps millisecond precision exact
    try:
        return EPOCH + timedelta(milliseconds=int(timestamp_ms))
    except OverflowError as e:
        raise ValueError(f"Invalid timestamp: {timestamp_ms}. Error: {e}")


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """
    Convert a datetime object to Unix timestamp.

    Args:
        dt: Datetime object (can be naive or timezone-aware)
        milliseconds: If True, return milliseconds; if False, return seconds

    Returns:
        int: Unix timestamp in seconds or milliseconds

    Examples:
        >>> dt = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        >>> datetime_to_timestamp(dt)
        1704110400

        >>> datetime_to_timestamp(dt, milliseconds=True)
        1704110400000

    Notes:
        - If datetime is naive (no timezone), UTC is assumed
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    delta = dt - EPOCH
    if milliseconds:
        return delta // timedelta(milliseconds=1)

    return delta // timedelta(seconds=1)
