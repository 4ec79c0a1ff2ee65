"""Pyth price accounts on Solana.

Decodes the aggregate price from a Pyth v2 price account read through the
Solana driver.
"""

import logging
import struct
from decimal import Decimal

from bottlechain.chain_service import ChainService
from bottlechain.errors import BottleChainError, PriceSourceError
from bottlechain.prices.base import PriceQuote, PriceSource, TokenPriceConfig

logger = logging.getLogger(__name__)

PYTH_MAGIC = 0xA1B2C3D4
PRICE_ACCOUNT_TYPE = 3
STATUS_TRADING = 1

# Byte offsets in the v2 price account layout
EXPO_OFFSET = 20
AGG_PRICE_OFFSET = 208
AGG_CONF_OFFSET = 216
AGG_STATUS_OFFSET = 224
MIN_ACCOUNT_SIZE = 240


def decode_price_account(data: bytes) -> tuple[int, int, int, int]:
    """Return (price, confidence, exponent, status) from a price account.

    Raises:
        ValueError: if the data is not a Pyth price account
    """
    if len(data) < MIN_ACCOUNT_SIZE:
        raise ValueError(f"account too small ({len(data)} bytes)")
    magic, _version, account_type = struct.unpack_from("<III", data, 0)
    if magic != PYTH_MAGIC or account_type != PRICE_ACCOUNT_TYPE:
        raise ValueError("not a Pyth price account")
    (expo,) = struct.unpack_from("<i", data, EXPO_OFFSET)
    (price,) = struct.unpack_from("<q", data, AGG_PRICE_OFFSET)
    (conf,) = struct.unpack_from("<Q", data, AGG_CONF_OFFSET)
    (status,) = struct.unpack_from("<I", data, AGG_STATUS_OFFSET)
    return price, conf, expo, status


class PythSource(PriceSource):
    """Pyth network reader (Solana)."""

    def __init__(self, chain_service: ChainService):
        self.chain_service = chain_service

    @property
    def name(self) -> str:
        return "pyth"

    async def fetch(self, config: TokenPriceConfig, as_of: float) -> PriceQuote:
        if not config.pyth_feed:
            raise PriceSourceError(config.symbol, self.name, "no feed configured")

        driver = self.chain_service.resolve(config.chain)
        try:
            data = await driver.get_account_data(config.pyth_feed)
        except BottleChainError as e:
            raise PriceSourceError(config.symbol, self.name, str(e)) from e

        if data is None:
            raise PriceSourceError(config.symbol, self.name, f"account {config.pyth_feed} not found")

        try:
            price, _conf, expo, status = decode_price_account(data)
        except ValueError as e:
            raise PriceSourceError(config.symbol, self.name, str(e)) from e

        if status != STATUS_TRADING or price <= 0:
            raise PriceSourceError(config.symbol, self.name, f"feed not trading (status={status})")

        return PriceQuote(
            symbol=config.symbol,
            price=Decimal(price).scaleb(expo),
            change_24h=Decimal("0"),
            volume_24h=Decimal("0"),
            market_cap=Decimal("0"),
            last_updated=as_of,
            source=self.name,
        )
