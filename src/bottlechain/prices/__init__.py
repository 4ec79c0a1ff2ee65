"""Price feeds: sources and the aggregator."""

from bottlechain.prices.base import TOKEN_PRICE_CONFIGS, PriceQuote, PriceSource, TokenPriceConfig
from bottlechain.prices.chainlink import ChainlinkSource
from bottlechain.prices.coingecko import CoinGeckoSource
from bottlechain.prices.feed import PriceFeedAggregator, PriceState, Subscription
from bottlechain.prices.pyth import PythSource
from bottlechain.prices.synthetic import SyntheticSource

__all__ = [
    "TOKEN_PRICE_CONFIGS",
    "PriceQuote",
    "PriceSource",
    "TokenPriceConfig",
    "ChainlinkSource",
    "CoinGeckoSource",
    "PythSource",
    "SyntheticSource",
    "PriceFeedAggregator",
    "PriceState",
    "Subscription",
]
