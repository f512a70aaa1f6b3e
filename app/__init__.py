"""
FastAPI Application Package

HTTP entry point for the Bitfinex connector: portfolio valuation plus
read-only ticker, trade and candle endpoints.
"""
