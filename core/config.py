"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates endpoint URLs, port and log level on startup
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (CORS origins)

Usage:
    from core.config import settings

    print(settings.bitfinex_ws_url)
    print(settings.request_timeout)
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        bitfinex_rest_url: Base URL for the Bitfinex public REST API (v2)
        bitfinex_ws_url: Bitfinex public WebSocket endpoint (v2)
        request_timeout: Timeout for HTTP requests in seconds
        ws_connect_timeout: Timeout for the WebSocket handshake in seconds
        ws_heartbeat: Interval of client pings on the WebSocket (seconds)
        event_queue_size: Capacity of each event subscriber queue
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        log_level: Logging level name
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Bitfinex Endpoints
    # ============================================

    bitfinex_rest_url: str = Field(
        default="https://api-pub.bitfinex.com/v2",
        description="Bitfinex public REST API base URL"
    )

    bitfinex_ws_url: str = Field(
        default="wss://api-pub.bitfinex.com/ws/2",
        description="Bitfinex public WebSocket URL"
    )

    # ============================================
    # Transport Tuning
    # ============================================

    request_timeout: int = Field(
        default=10,
        description="HTTP request timeout in seconds"
    )

    ws_connect_timeout: int = Field(
        default=10,
        description="WebSocket handshake timeout in seconds"
    )

    ws_heartbeat: int = Field(
        default=30,
        description="Seconds between client pings on the WebSocket"
    )

    event_queue_size: int = Field(
        default=1000,
        description="Maximum pending events per queue subscriber"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # CORS Configuration
    # ============================================

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so the logger cannot be imported at module level
    from core.logging import logger

    if not settings.bitfinex_rest_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid BITFINEX_REST_URL: '{settings.bitfinex_rest_url}'. "
            f"Must start with http:// or https://"
        )

    if not settings.bitfinex_ws_url.startswith(("ws://", "wss://")):
        raise ValueError(
            f"Invalid BITFINEX_WS_URL: '{settings.bitfinex_ws_url}'. "
            f"Must start with ws:// or wss://"
        )

    if settings.request_timeout <= 0 or settings.ws_connect_timeout <= 0:
        raise ValueError("REQUEST_TIMEOUT and WS_CONNECT_TIMEOUT must be positive")

    if settings.event_queue_size <= 0:
        raise ValueError(f"Invalid EVENT_QUEUE_SIZE: {settings.event_queue_size}. Must be positive")

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Bitfinex REST: {settings.bitfinex_rest_url}")
    logger.info(f"Bitfinex WebSocket: {settings.bitfinex_ws_url}")
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
