"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger

    logger.debug("Detailed debugging information")
    logger.info("General informational messages")

    # Or a component logger:
    from core.logging import get_logger
    logger = get_logger(__name__)

    # Stream helpers keep frame-level lines uniform:
    from core.logging import log_frame_drop
    log_frame_drop("bitfinex", "Invalid JSON", raw_text)

Log Levels (from most to least verbose):
    DEBUG    - Frame-level detail (e.g., "Dropped frame for unknown channel 17")
    INFO     - Lifecycle messages (e.g., "Connected to Bitfinex")
    WARNING  - Recoverable problems (e.g., "Discarding malformed frame")
    ERROR    - Failures surfaced to callers (e.g., "Receive loop failed")
    CRITICAL - Severe errors

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Any, Optional


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] bfxconnector: Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s:")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger("bfxconnector")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Child of the application logger

    Example:
        >>> logger = get_logger("exchanges.bitfinex.ws_client")
        >>> logger.name
        'bfxconnector.exchanges.bitfinex.ws_client'
    """
    return logging.getLogger(f"bfxconnector.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("bitfinex", "/ticker/tBTCUSD")
        [DEBUG] API Request: bitfinex /ticker/tBTCUSD
    """
    if params:
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("bitfinex", "/ticker/tBTCUSD", 200, 0.342)
        [DEBUG] API Response: bitfinex /ticker/tBTCUSD | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


def log_websocket_event(exchange: str, event: str, symbol: str = None, details: str = None) -> None:
    """
    Log a WebSocket event with consistent formatting.

    Events named "error" are logged at ERROR level, everything else at INFO.

    Example:
        >>> log_websocket_event("bitfinex", "subscribe", "tBTCUSD", "channel=trades")
        [INFO] WebSocket: bitfinex subscribe | Symbol: tBTCUSD | channel=trades
    """
    symbol_str = f" | Symbol: {symbol}" if symbol else ""
    details_str = f" | {details}" if details else ""

    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: {exchange} {event}{symbol_str}{details_str}")


# ============================================
# Stream Helpers
# ============================================

# Raw frames can be whole candle snapshots; keep log lines readable
MAX_RAW_LOG_CHARS = 200


def _truncate(raw: Any) -> str:
    text = raw if isinstance(raw, str) else repr(raw)
    if len(text) <= MAX_RAW_LOG_CHARS:
        return text
    return f"{text[:MAX_RAW_LOG_CHARS]}... ({len(text)} chars)"


def log_frame_drop(exchange: str, reason: str, raw: Any = None, level: int = logging.WARNING) -> None:
    """
    Log a stream frame that was discarded instead of routed.

    Malformed frames are worth a warning; frames for channels we already left
    are routine and should be passed level=logging.DEBUG.

    Example:
        >>> log_frame_drop("bitfinex", "Invalid JSON", '[5, "te", ')
        [WARNING] Frame dropped: bitfinex | Invalid JSON | raw=[5, "te",
    """
    raw_str = f" | raw={_truncate(raw)}" if raw is not None else ""
    logger.log(level, f"Frame dropped: {exchange} | {reason}{raw_str}")


def log_channel_event(exchange: str, event: str, channel_id: int, channel: str, symbol: str) -> None:
    """
    Log a server-confirmed channel change (subscribed / unsubscribed).

    Example:
        >>> log_channel_event("bitfinex", "subscribed", 5, "trades", "tBTCUSD")
        [INFO] Channel: bitfinex subscribed | chanId=5 | trades:tBTCUSD
    """
    logger.info(f"Channel: {exchange} {event} | chanId={channel_id} | {channel}:{symbol}")


logger.debug("Logging system initialized")
