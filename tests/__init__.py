"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (decoder, parsers, router,
  WebSocket and REST clients with mocked transports, HTTP API)

Uses pytest with pytest-asyncio for testing async functionality.
"""
