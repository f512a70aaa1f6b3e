"""
Exchange Connectors Package

Each exchange has its own subfolder with:
- api_client.py: REST API logic
- ws_client.py: WebSocket connection and receive loop
- __init__.py: Connector class implementing RestConnector / WebSocketConnector

Only Bitfinex is implemented.
"""
