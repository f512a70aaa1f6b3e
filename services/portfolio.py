"""
Portfolio Valuation Service

Values a basket of assets at current Bitfinex prices and expresses the total
in USDT and in each asset of the basket.

Example:
    >>> service = PortfolioService(connector)
    >>> await service.calculate_balances({"BTC": Decimal("1"), "ETH": Decimal("10")})
    {'USDT': Decimal('60000'), 'BTC': Decimal('1.5'), 'ETH': Decimal('30')}
"""

from decimal import Decimal
from typing import Dict, Mapping

from core.connector_interface import RestConnector
from core.exceptions import InvalidArgumentError
from core.logging import get_logger


TOTAL_CURRENCY = "USDT"


def usd_pair(asset: str) -> str:
    """Bitfinex trading pair quoting an asset in USD, e.g. "BTC" -> "tBTCUSD"."""
    return f"t{asset.upper()}USD"


class PortfolioService:
    """
    Converts asset amounts into balances using each asset's last USD price.

    Attributes:
        connector: Source of tickers
    """

    def __init__(self, connector: RestConnector):
        self.connector = connector
        self.logger = get_logger(__name__)

    async def fetch_rates(self, assets) -> Dict[str, Decimal]:
        """
        Last USD price for every asset.

        Raises:
            BitfinexApiError: If an asset has no USD pair on Bitfinex
            InvalidArgumentError: If a price is not positive
        """
        rates: Dict[str, Decimal] = {}
        for asset in assets:
            ticker = await self.connector.get_ticker(usd_pair(asset))
            if ticker.last_price <= 0:
                raise InvalidArgumentError(f"No usable price for {asset}: {ticker.last_price}")
            rates[asset] = ticker.last_price
        return rates

    async def calculate_balances(self, assets: Mapping[str, Decimal]) -> Dict[str, Decimal]:
        """
        Value a portfolio.

        Args:
            assets: Asset code -> amount held (e.g., {"BTC": 1, "XRP": 15000})

        Returns:
            "USDT" -> total USD value, plus asset -> total value expressed in
            that asset for every asset other than USDT
        """
        amounts = {asset: Decimal(amount) for asset, amount in assets.items()}
        rates = await self.fetch_rates(amounts)

        total = sum((amount * rates[asset] for asset, amount in amounts.items()), Decimal(0))

        balances: Dict[str, Decimal] = {TOTAL_CURRENCY: total}
        for asset in amounts:
            if asset == TOTAL_CURRENCY:
                continue
            balances[asset] = total / rates[asset]

        self.logger.info(f"Valued {len(amounts)} assets at {total} {TOTAL_CURRENCY}")
        return balances
