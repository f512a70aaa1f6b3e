"""
Unit Tests for Configuration Module

These tests verify that the configuration system works correctly:
- Default values point at the public Bitfinex endpoints
- Validation catches invalid configurations
- Property methods work as expected

Run with:
    pytest tests/unit/test_config.py -v
"""

import pytest
from core.config import Settings, settings, validate_configuration


class TestConfigurationLoading:
    """Test that configuration loads with usable values"""

    def test_bitfinex_rest_url_loaded(self):
        """Verify Bitfinex REST URL is set"""
        assert "bitfinex" in settings.bitfinex_rest_url.lower()
        assert settings.bitfinex_rest_url.startswith("http")

    def test_bitfinex_ws_url_loaded(self):
        """Verify Bitfinex WebSocket URL is set"""
        assert "bitfinex" in settings.bitfinex_ws_url.lower()
        assert settings.bitfinex_ws_url.startswith("ws")

    def test_app_port_is_valid_integer(self):
        assert isinstance(settings.app_port, int)
        assert 1 <= settings.app_port <= 65535

    def test_debug_mode_is_boolean(self):
        assert isinstance(settings.debug, bool)

    def test_timeouts_are_positive(self):
        assert settings.request_timeout > 0
        assert settings.ws_connect_timeout > 0
        assert settings.event_queue_size > 0


class TestConfigurationProperties:
    """Test property methods and computed values"""

    def test_cors_origins_list_splits_and_strips(self):
        """Comma-separated origins become a clean list"""
        custom = Settings(cors_origins=" http://a.test , http://b.test,,")
        assert custom.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_default_cors_origins_list_is_list(self):
        assert isinstance(settings.cors_origins_list, list)


class TestConfigurationValidation:
    """Test configuration validation function"""

    def test_validate_configuration_succeeds(self):
        """Verify validation passes with default configuration"""
        try:
            validate_configuration()
        except ValueError as e:
            pytest.fail(f"Configuration validation failed: {e}")

    @pytest.mark.parametrize("field,value,message", [
        ("bitfinex_rest_url", "ftp://api-pub.bitfinex.com/v2", "BITFINEX_REST_URL"),
        ("bitfinex_ws_url", "https://api-pub.bitfinex.com/ws/2", "BITFINEX_WS_URL"),
        ("request_timeout", 0, "REQUEST_TIMEOUT"),
        ("event_queue_size", 0, "EVENT_QUEUE_SIZE"),
        ("app_port", 70000, "port"),
        ("log_level", "VERBOSE", "LOG_LEVEL"),
    ])
    def test_validation_rejects_invalid_values(self, monkeypatch, field, value, message):
        monkeypatch.setattr(settings, field, value)
        with pytest.raises(ValueError, match=message):
            validate_configuration()
