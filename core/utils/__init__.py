"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Millisecond timestamp <-> UTC datetime conversion
"""

from core.utils.time import to_utc_datetime, datetime_to_timestamp

__all__ = ["to_utc_datetime", "datetime_to_timestamp"]
