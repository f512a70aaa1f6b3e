"""
FastAPI Application - Bitfinex Market Data & Portfolio API

Provides HTTP access to the Bitfinex connector and the portfolio helper.

Features:
    - Portfolio valuation at current Bitfinex prices
    - Ticker, recent trades and historical candles (read-only REST mirror)

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Dict, List, NoReturn, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings, validate_configuration
from core.connector_interface import RestConnector
from core.exceptions import BitfinexApiError, ConnectorError, InvalidArgumentError, TransportError
from core.logging import logger
from core.schemas import Candle, Ticker, Trade
from exchanges.bitfinex import BitfinexConnector
from services.portfolio import PortfolioService


connector = BitfinexConnector()  # Global connector


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await connector.initialize()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await connector.shutdown()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Bitfinex Connector API",
    description=(
        "HTTP API over the Bitfinex market data connector.\n\n"
        "## Endpoints\n"
        "- `POST /api/portfolio/balance` - Value a portfolio (`{\"BTC\": 1, \"ETH\": 10}`)\n"
        "- `GET /ticker/{symbol}` - Current ticker (e.g., `tBTCUSD`)\n"
        "- `GET /trades/{symbol}` - Recent trades\n"
        "- `GET /candles/{symbol}?period_in_sec=60` - Historical candles\n"
        "- `GET /health` - Health check\n\n"
        "Numbers are returned as decimal strings to keep exchange precision."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


def get_connector() -> RestConnector:
    """Connector used by the endpoints (overridden in tests)."""
    return connector


def _raise_http_error(e: ConnectorError) -> NoReturn:
    """Map connector errors to HTTP responses."""
    if isinstance(e, InvalidArgumentError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, BitfinexApiError):
        raise HTTPException(status_code=400, detail={"code": e.error_code, "message": e.message})
    if isinstance(e, TransportError):
        raise HTTPException(status_code=502, detail=f"Bitfinex unreachable: {e}")
    raise HTTPException(status_code=500, detail=str(e))


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "Bitfinex Connector API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "exchange": BitfinexConnector.name
    }


@app.get("/health", tags=["System"])
async def health_check(conn: RestConnector = Depends(get_connector)):
    """Health check - asks Bitfinex for its platform status."""
    healthy = await conn.health_check()
    return {
        "status": "healthy" if healthy else "degraded",
        "exchanges": {BitfinexConnector.name: healthy}
    }


# ============================================
# Market Data Endpoints
# ============================================

@app.get("/ticker/{symbol}", response_model=Ticker, tags=["Market Data"])
async def get_ticker(symbol: str, conn: RestConnector = Depends(get_connector)):
    """
    Get the current ticker.

    Example:
        GET /ticker/tBTCUSD
    """
    try:
        return await conn.get_ticker(symbol)
    except ConnectorError as e:
        logger.error(f"Ticker error {symbol}: {e}")
        _raise_http_error(e)


@app.get("/trades/{symbol}", response_model=List[Trade], tags=["Market Data"])
async def get_trades(
    symbol: str,
    limit: int = Query(default=125, ge=1, le=10000, description="Number of trades"),
    conn: RestConnector = Depends(get_connector)
):
    """
    Get recent trades, newest first.

    Example:
        GET /trades/tBTCUSD?limit=50
    """
    try:
        return await conn.get_new_trades(symbol, max_count=limit)
    except ConnectorError as e:
        logger.error(f"Trades error {symbol}: {e}")
        _raise_http_error(e)


@app.get("/candles/{symbol}", response_model=List[Candle], tags=["Market Data"])
async def get_candles(
    symbol: str,
    period_in_sec: int = Query(default=60, description="Candle length in seconds (60, 300, ..., 2592000)"),
    limit: Optional[int] = Query(default=None, ge=1, le=10000, description="Number of candles"),
    conn: RestConnector = Depends(get_connector)
):
    """
    Get historical candles.

    Examples:
        GET /candles/tBTCUSD?period_in_sec=3600&limit=24
        GET /candles/tETHUSD?period_in_sec=86400
    """
    try:
        return await conn.get_candle_series(symbol, period_in_sec, count=limit)
    except ConnectorError as e:
        logger.error(f"Candles error {symbol}/{period_in_sec}: {e}")
        _raise_http_error(e)


# ============================================
# Portfolio Endpoints
# ============================================

@app.post("/api/portfolio/balance", response_model=Dict[str, Decimal], tags=["Portfolio"])
async def calculate_portfolio_balance(
    assets: Dict[str, Decimal] = Body(..., examples=[{"BTC": 1, "ETH": 10}]),
    conn: RestConnector = Depends(get_connector)
):
    """
    Value a portfolio at current Bitfinex USD prices.

    Returns the total in USDT plus the total expressed in each posted asset.

    Example:
        POST /api/portfolio/balance {"BTC": 1, "ETH": 10}
        -> {"USDT": "60000", "BTC": "1.5", "ETH": "30"}
    """
    try:
        return await PortfolioService(conn).calculate_balances(assets)
    except ConnectorError as e:
        logger.error(f"Portfolio valuation failed for {sorted(assets)}: {e}")
        _raise_http_error(e)


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors."""
    detail = getattr(exc, "detail", None) or "Not found"
    return JSONResponse(status_code=404, content={"detail": detail, "path": str(request.url)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
