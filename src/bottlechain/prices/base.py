"""Price records, per-token source configuration and the source interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PriceQuote:
    """Latest known market data for one symbol (USD)."""

    symbol: str
    price: Decimal
    change_24h: Decimal
    volume_24h: Decimal
    market_cap: Decimal
    last_updated: float  # unix seconds of the update cycle
    source: str = ""


@dataclass(frozen=True)
class TokenPriceConfig:
    """Which price feeds exist for a symbol."""

    symbol: str
    chain: str
    coingecko_id: Optional[str] = None
    chainlink_feed: Optional[str] = None  # aggregator contract on an EVM chain
    pyth_feed: Optional[str] = None  # price account on Solana


class PriceSource(ABC):
    """A provider of PriceQuote records."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name identifier."""
        pass

    @abstractmethod
    async def fetch(self, config: TokenPriceConfig, as_of: float) -> PriceQuote:
        """Fetch the current quote for a symbol.

        Args:
            config: Token price configuration
            as_of: Timestamp of the update cycle, stamped into last_updated

        Raises:
            PriceSourceError: if the source cannot produce a quote
        """
        pass

    async def close(self) -> None:
        """Release network resources."""


TOKEN_PRICE_CONFIGS: list[TokenPriceConfig] = [
    # Ethereum tokens
    TokenPriceConfig(
        symbol="ETH",
        coingecko_id="ethereum",
        chainlink_feed="0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419",
        chain="ethereum",
    ),
    TokenPriceConfig(
        symbol="USDT",
        coingecko_id="tether",
        chainlink_feed="0x3e7d1eab13ad0104d2750b8863b489d65364e32d",
        chain="ethereum",
    ),
    TokenPriceConfig(
        symbol="USDC",
        coingecko_id="usd-coin",
        chainlink_feed="0x8fffffd4afb6115b954bd326cbe7b4ba576818f6",
        chain="ethereum",
    ),
    # Binance tokens
    TokenPriceConfig(
        symbol="BNB",
        coingecko_id="binancecoin",
        chainlink_feed="0x0567f2323251f0aab15c8dfb1967e4e8a7d42aee",
        chain="binance",
    ),
    TokenPriceConfig(
        symbol="CAKE",
        coingecko_id="pancakeswap-token",
        chainlink_feed="0xb6064ed41d4f67e353768aa239ca86f4f73665a1",
        chain="binance",
    ),
    TokenPriceConfig(
        symbol="BUSD",
        coingecko_id="binance-usd",
        chainlink_feed="0xcbb98864ef56e9042e7d2efef76141f15731b82f",
        chain="binance",
    ),
    # Solana tokens
    TokenPriceConfig(
        symbol="SOL",
        coingecko_id="solana",
        pyth_feed="H6ARHf6YXhGYeQfUzQNGk6rDNnLBQKrenN712K4AQJEG",
        chain="solana",
    ),
    TokenPriceConfig(
        symbol="RAY",
        coingecko_id="raydium",
        pyth_feed="AnLf8tVYCM816gmBjiy8n53eXKKEDydT5piYjjQDPgTB",
        chain="solana",
    ),
    TokenPriceConfig(
        symbol="SRM",
        coingecko_id="serum",
        pyth_feed="3NBReDRTLKMQEKiLD5tGcx4kXbTf88b7f2xLS9UuGjym",
        chain="solana",
    ),
    # Bottle Chain has no market feed yet
    TokenPriceConfig(symbol="BTL", chain="bottle-chain"),
]
