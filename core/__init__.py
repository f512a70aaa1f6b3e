"""
Core Package

Contains the exchange-agnostic pieces of the connector:
- Connector interfaces: abstract REST and WebSocket contracts
- Schemas: Pydantic models for trades, candles, tickers and subscriptions
- Exceptions: the connector error taxonomy
- Config / logging: application settings and logger setup
"""
