"""
Unit Tests for the Candle Timeframe Helper

Run with:
    pytest tests/unit/test_timeframes.py -v
"""

import pytest

from core.exceptions import InvalidArgumentError
from core.timeframes import PERIOD_TO_TIMEFRAME, period_in_sec_to_timeframe


class TestPeriodToTimeframe:
    """Tests for period_in_sec_to_timeframe"""

    @pytest.mark.parametrize("period,expected", [
        (60, "1m"),
        (300, "5m"),
        (900, "15m"),
        (1800, "30m"),
        (3600, "1h"),
        (10800, "3h"),
        (21600, "6h"),
        (43200, "12h"),
        (86400, "1D"),
        (604800, "1W"),
        (1209600, "14D"),
        (2592000, "1M"),
    ])
    def test_documented_periods(self, period, expected):
        assert period_in_sec_to_timeframe(period) == expected

    def test_table_has_twelve_entries(self):
        assert len(PERIOD_TO_TIMEFRAME) == 12

    @pytest.mark.parametrize("period", [123, 0, -60, 120, 7200])
    def test_unsupported_period_raises(self, period):
        with pytest.raises(InvalidArgumentError, match="Unsupported period"):
            period_in_sec_to_timeframe(period)

    @pytest.mark.parametrize("period", [60.0, "60", None, True])
    def test_non_integer_period_raises(self, period):
        with pytest.raises(InvalidArgumentError):
            period_in_sec_to_timeframe(period)

    def test_invalid_argument_is_value_error(self):
        """Callers catching ValueError still see the failure"""
        with pytest.raises(ValueError):
            period_in_sec_to_timeframe(123)
