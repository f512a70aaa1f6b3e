"""
Unit Tests for the HTTP API

The global connector is replaced through FastAPI dependency overrides, so no
request leaves the process. The lifespan is not run (TestClient is not used
as a context manager).

Run with:
    pytest tests/unit/test_app.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.main import app, get_connector
from core.connector_interface import RestConnector
from core.exceptions import BitfinexApiError, InvalidArgumentError, TransportError
from core.schemas import Candle, Ticker, Trade, TradeSide
from core.timeframes import period_in_sec_to_timeframe


TS = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


class StubConnector(RestConnector):
    """RestConnector with canned answers"""

    def __init__(self, prices=None, healthy=True, error=None):
        self.prices = prices or {}
        self.healthy = healthy
        self.error = error
        self.calls = []

    async def get_new_trades(self, pair, max_count=125, start=None, end=None, sort_ascending=False):
        self.calls.append(("trades", pair, max_count))
        if self.error:
            raise self.error
        return [Trade(id="101", time=TS, amount=Decimal("0.5"), price=Decimal("42000"), side=TradeSide.BUY, pair=pair)]

    async def get_candle_series(self, pair, period_in_sec, start=None, end=None, count=None):
        self.calls.append(("candles", pair, period_in_sec, count))
        period_in_sec_to_timeframe(period_in_sec)
        return [Candle(
            open_time=TS, open=Decimal("100"), high=Decimal("105"),
            low=Decimal("99"), close=Decimal("102"), volume=Decimal("10")
        )]

    async def get_ticker(self, pair):
        if self.error:
            raise self.error
        if pair not in self.prices:
            raise BitfinexApiError(error_code=10020, message=f"Invalid pair: {pair}")
        price = Decimal(self.prices[pair])
        return Ticker(
            bid=price, bid_size=Decimal("1"), ask=price, ask_size=Decimal("1"),
            daily_change=Decimal("0"), daily_change_relative=Decimal("0"),
            last_price=price, volume=Decimal("1"), high=price, low=price
        )

    async def health_check(self):
        return self.healthy


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def stub():
    return StubConnector(prices={"tBTCUSD": "40000", "tETHUSD": "2000"})


@pytest.fixture
def client(stub):
    app.dependency_overrides[get_connector] = lambda: stub
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================
# System Endpoints
# ============================================

class TestSystemEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["exchange"] == "bitfinex"

    def test_health_healthy(self, client):
        response = client.get("/health")
        assert response.json() == {"status": "healthy", "exchanges": {"bitfinex": True}}

    def test_health_degraded(self, client, stub):
        stub.healthy = False
        assert client.get("/health").json()["status"] == "degraded"


# ============================================
# Portfolio Endpoint
# ============================================

class TestPortfolioBalance:

    def test_balance(self, client):
        response = client.post("/api/portfolio/balance", json={"BTC": 1, "ETH": 10})

        assert response.status_code == 200
        body = {k: Decimal(str(v)) for k, v in response.json().items()}
        assert body == {"USDT": Decimal("60000"), "BTC": Decimal("1.5"), "ETH": Decimal("30")}

    def test_unknown_asset_is_400_with_exchange_code(self, client):
        response = client.post("/api/portfolio/balance", json={"NOPE": 1})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == 10020

    def test_non_numeric_amount_is_422(self, client):
        response = client.post("/api/portfolio/balance", json={"BTC": "lots"})
        assert response.status_code == 422

    def test_transport_failure_is_502(self, client, stub):
        stub.error = TransportError("Request failed")

        response = client.post("/api/portfolio/balance", json={"BTC": 1})

        assert response.status_code == 502


# ============================================
# Market Data Endpoints
# ============================================

class TestMarketDataEndpoints:

    def test_ticker(self, client):
        response = client.get("/ticker/tBTCUSD")

        assert response.status_code == 200
        assert Decimal(str(response.json()["last_price"])) == Decimal("40000")

    def test_unknown_ticker_is_400(self, client):
        response = client.get("/ticker/tNOPEUSD")

        assert response.status_code == 400
        assert response.json()["detail"] == {"code": 10020, "message": "Invalid pair: tNOPEUSD"}

    def test_trades_passes_limit(self, client, stub):
        response = client.get("/trades/tBTCUSD", params={"limit": 10})

        assert response.status_code == 200
        assert response.json()[0]["side"] == "buy"
        assert stub.calls == [("trades", "tBTCUSD", 10)]

    def test_trades_limit_out_of_range_is_422(self, client, stub):
        assert client.get("/trades/tBTCUSD", params={"limit": 0}).status_code == 422
        assert stub.calls == []

    def test_trades_invalid_argument_is_422(self, client, stub):
        stub.error = InvalidArgumentError("bad range")
        assert client.get("/trades/tBTCUSD").status_code == 422

    def test_candles(self, client, stub):
        response = client.get("/candles/tBTCUSD", params={"period_in_sec": 3600, "limit": 24})

        assert response.status_code == 200
        assert Decimal(str(response.json()[0]["high"])) == Decimal("105")
        assert stub.calls == [("candles", "tBTCUSD", 3600, 24)]

    def test_candles_unknown_period_is_422(self, client):
        response = client.get("/candles/tBTCUSD", params={"period_in_sec": 123})

        assert response.status_code == 422
        assert "Unsupported period" in response.json()["detail"]
