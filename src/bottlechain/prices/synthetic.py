"""Synthetic price source for symbols without any real feed.

Prices wander within +/-0.5% of a fixed base price on every update.
"""

import logging
import random
from decimal import Decimal
from typing import Optional

from bottlechain.prices.base import PriceQuote, PriceSource, TokenPriceConfig

logger = logging.getLogger(__name__)

BASE_PRICES: dict[str, Decimal] = {
    "BTL": Decimal("45.67"),
    "ETH": Decimal("3000"),
    "BNB": Decimal("300"),
    "SOL": Decimal("100"),
    "USDT": Decimal("1"),
    "USDC": Decimal("1"),
    "BUSD": Decimal("1"),
    "CAKE": Decimal("2.5"),
    "RAY": Decimal("1.2"),
    "SRM": Decimal("0.8"),
}

# Symbols without a listed base price
DEFAULT_BASE_PRICE = Decimal("1")

PERTURBATION = Decimal("0.01")  # total band width, i.e. +/-0.5%


class SyntheticSource(PriceSource):
    """Base price with a small pseudo-random perturbation."""

    def __init__(
        self,
        base_prices: Optional[dict[str, Decimal]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.base_prices = dict(BASE_PRICES if base_prices is None else base_prices)
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "synthetic"

    def _rand(self) -> Decimal:
        return Decimal(str(self._rng.random()))

    async def fetch(self, config: TokenPriceConfig, as_of: float) -> PriceQuote:
        base = self.base_prices.get(config.symbol.upper(), DEFAULT_BASE_PRICE)
        price = base * (1 + (self._rand() - Decimal("0.5")) * PERTURBATION)
        return PriceQuote(
            symbol=config.symbol,
            price=price,
            change_24h=(self._rand() - Decimal("0.5")) * 10,
            volume_24h=self._rand() * 1_000_000,
            market_cap=base * 1_000_000,
            last_updated=as_of,
            source=self.name,
        )
