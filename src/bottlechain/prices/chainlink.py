"""Chainlink on-chain price feeds (EVM chains).

Reads `latestRoundData()` and `decimals()` from the aggregator contract
through the chain's EVM driver.
"""

import asyncio
import logging
import time
from decimal import Decimal

from bottlechain.chain_service import ChainService
from bottlechain.drivers import abi
from bottlechain.errors import BottleChainError, PriceSourceError
from bottlechain.prices.base import PriceQuote, PriceSource, TokenPriceConfig
from bottlechain.units import format_units

logger = logging.getLogger(__name__)

# Feeds older than this are treated as failures
MAX_ROUND_AGE_SECONDS = 24 * 60 * 60


class ChainlinkSource(PriceSource):
    """Chainlink aggregator reader."""

    def __init__(self, chain_service: ChainService):
        self.chain_service = chain_service

    @property
    def name(self) -> str:
        return "chainlink"

    async def fetch(self, config: TokenPriceConfig, as_of: float) -> PriceQuote:
        if not config.chainlink_feed:
            raise PriceSourceError(config.symbol, self.name, "no feed configured")

        driver = self.chain_service.resolve(config.chain)
        try:
            round_data, decimals_data = await asyncio.gather(
                driver.eth_call(config.chainlink_feed, abi.LATEST_ROUND_DATA),
                driver.eth_call(config.chainlink_feed, abi.DECIMALS),
            )
        except BottleChainError as e:
            raise PriceSourceError(config.symbol, self.name, str(e)) from e

        try:
            answer = abi.decode_int(round_data, 1)
            updated_at = abi.decode_uint(round_data, 3)
            decimals = abi.decode_uint(decimals_data)
        except ValueError as e:
            raise PriceSourceError(config.symbol, self.name, f"malformed response: {e}") from e

        if answer <= 0:
            raise PriceSourceError(config.symbol, self.name, f"non-positive answer {answer}")
        if updated_at and time.time() - updated_at > MAX_ROUND_AGE_SECONDS:
            raise PriceSourceError(config.symbol, self.name, f"round is stale (updatedAt={updated_at})")

        # Aggregator feeds report price only
        return PriceQuote(
            symbol=config.symbol,
            price=format_units(answer, decimals),
            change_24h=Decimal("0"),
            volume_24h=Decimal("0"),
            market_cap=Decimal("0"),
            last_updated=as_of,
            source=self.name,
        )
