"""CoinGecko market-data aggregator.

API docs: https://docs.coingecko.com/reference/simple-price
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from bottlechain.errors import PriceSourceError
from bottlechain.prices.base import PriceQuote, PriceSource, TokenPriceConfig

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.coingecko.com/api/v3"


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


class CoinGeckoSource(PriceSource):
    """CoinGecko simple/price reader.

    One request per symbol with 24h change, volume and market cap included.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        api_key: str = "",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "coingecko"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"accept": "application/json"}
            if self.api_key:
                headers["x-cg-demo-api-key"] = self.api_key
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self._client

    async def fetch(self, config: TokenPriceConfig, as_of: float) -> PriceQuote:
        if not config.coingecko_id:
            raise PriceSourceError(config.symbol, self.name, "no CoinGecko id configured")

        params = {
            "ids": config.coingecko_id,
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_24hr_vol": "true",
            "include_market_cap": "true",
        }
        try:
            response = await self._get_client().get(f"{self.api_url}/simple/price", params=params)
        except httpx.HTTPError as e:
            raise PriceSourceError(config.symbol, self.name, f"request failed: {e}") from e

        if response.status_code != 200:
            raise PriceSourceError(
                config.symbol, self.name, f"HTTP {response.status_code}: {response.text[:200]}"
            )

        data = response.json().get(config.coingecko_id)
        if not data or data.get("usd") is None:
            raise PriceSourceError(config.symbol, self.name, f"no data for {config.coingecko_id}")

        price = _to_decimal(data["usd"])
        if price <= 0:
            raise PriceSourceError(config.symbol, self.name, f"non-positive price {price}")

        return PriceQuote(
            symbol=config.symbol,
            price=price,
            change_24h=_to_decimal(data.get("usd_24h_change")),
            volume_24h=_to_decimal(data.get("usd_24h_vol")),
            market_cap=_to_decimal(data.get("usd_market_cap")),
            last_updated=as_of,
            source=self.name,
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
