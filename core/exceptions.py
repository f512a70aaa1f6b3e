"""
Connector Error Taxonomy

Every error raised by the connector derives from ConnectorError so callers
can catch the whole family at once.

    ConnectorError
    ├── ProtocolDecodeError   malformed / unrecognised frame (dropped, loop continues)
    ├── UnknownChannelError   data frame for a channel id with no live subscription
    ├── InvalidArgumentError  bad caller input, raised before any network call
    ├── TransportError        handshake, send or HTTP transport failure
    ├── FatalLoopError        the WebSocket receive loop died
    └── BitfinexApiError      error reported by the exchange, with its numeric code
"""

from typing import Any, Optional


class ConnectorError(Exception):
    """Base class for all connector errors."""


class ProtocolDecodeError(ConnectorError):
    """
    Raised when an inbound frame cannot be decoded.

    Attributes:
        raw: The offending frame (truncated text or decoded value)
    """

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw


class UnknownChannelError(ConnectorError):
    """Raised when a data frame references a channel id nobody is subscribed to."""

    def __init__(self, channel_id: int):
        super().__init__(f"No live subscription for channel {channel_id}")
        self.channel_id = channel_id


class InvalidArgumentError(ConnectorError, ValueError):
    """Raised for unsupported periods, out-of-range limits and similar caller mistakes."""


class TransportError(ConnectorError, ConnectionError):
    """Raised when the WebSocket or HTTP transport fails."""


class FatalLoopError(ConnectorError):
    """
    Raised when the receive loop stops because of an unexpected condition.

    The original exception, if any, is chained as __cause__.
    """


class BitfinexApiError(ConnectorError):
    """
    Error reported by the Bitfinex API.

    Bitfinex reports failures as ["error", <code>, <message>]; the code is kept
    so callers can tell e.g. 10020 (invalid symbol) from other failures.
    """

    def __init__(self, error_code: int, message: str, status: Optional[int] = None):
        super().__init__(f"Bitfinex API error {error_code}: {message}")
        self.error_code = error_code
        self.message = message
        self.status = status
