"""
Services Package

- event_bus: synchronous pub/sub between the receive loop and consumers
- portfolio: portfolio valuation at current Bitfinex prices
"""
