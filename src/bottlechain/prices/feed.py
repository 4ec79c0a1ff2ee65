"""Price feed aggregator.

Keeps one PriceQuote per configured symbol, refreshes the table on a fixed
period and fans updates out to subscribers.

Each symbol is served by exactly one source, picked by priority:
on-chain oracle (Chainlink on EVM chains, Pyth on Solana), then the
CoinGecko aggregator, then the synthetic generator.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainFamily
from bottlechain.config import Settings, get_settings
from bottlechain.errors import PriceSourceError
from bottlechain.prices.base import TOKEN_PRICE_CONFIGS, PriceQuote, PriceSource, TokenPriceConfig
from bottlechain.prices.chainlink import ChainlinkSource
from bottlechain.prices.coingecko import CoinGeckoSource
from bottlechain.prices.pyth import PythSource
from bottlechain.prices.synthetic import SyntheticSource

logger = logging.getLogger(__name__)

PriceCallback = Callable[[str, PriceQuote], None]


class PriceState(str, Enum):
    """Update state of a tracked symbol."""

    STALE = "stale"
    UPDATING = "updating"
    FRESH = "fresh"


class Subscription:
    """Handle for one registered price callback.

    cancel() is the only way to stop delivery. Cancelling twice is a no-op.
    """

    def __init__(self, callback: PriceCallback, on_cancel: Callable[["Subscription"], None]):
        self._callback = callback
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_cancel(self)

    def _close(self) -> None:
        self._active = False

    def _deliver(self, symbol: str, quote: PriceQuote) -> None:
        if self._active:
            self._callback(symbol, quote)


class PriceFeedAggregator:
    """Owner of the symbol -> PriceQuote table and its subscribers."""

    def __init__(
        self,
        chain_service: Optional[ChainService] = None,
        configs: Optional[Iterable[TokenPriceConfig]] = None,
        settings: Optional[Settings] = None,
        sources: Optional[dict[str, PriceSource]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.chain_service = chain_service
        self._configs: dict[str, TokenPriceConfig] = {
            c.symbol.upper(): c for c in (TOKEN_PRICE_CONFIGS if configs is None else configs)
        }
        self._sources = sources if sources is not None else self._default_sources()
        self._clock = clock

        self._prices: dict[str, PriceQuote] = {}
        self._states: dict[str, PriceState] = {s: PriceState.STALE for s in self._configs}
        self._subscriptions: list[Subscription] = []
        self._task: Optional[asyncio.Task] = None

    def _default_sources(self) -> dict[str, PriceSource]:
        sources: dict[str, PriceSource] = {
            "coingecko": CoinGeckoSource(
                api_url=self.settings.coingecko_api_url,
                api_key=self.settings.coingecko_api_key,
                timeout=self.settings.rpc_timeout,
            ),
            "synthetic": SyntheticSource(),
        }
        if self.chain_service is not None:
            sources["chainlink"] = ChainlinkSource(self.chain_service)
            sources["pyth"] = PythSource(self.chain_service)
        return sources

    # ------------------------------------------------------------------
    # Source selection
    # ------------------------------------------------------------------

    def _chain_family(self, chain_id: str) -> Optional[ChainFamily]:
        if self.chain_service is None or not self.chain_service.registry.has_chain(chain_id):
            return None
        return self.chain_service.registry.get_chain(chain_id).family

    def select_source(self, config: TokenPriceConfig) -> PriceSource:
        """Pick the single source that serves a symbol."""
        family = self._chain_family(config.chain)

        if config.chainlink_feed and "chainlink" in self._sources:
            if family in (ChainFamily.EVM, ChainFamily.CUSTOM):
                return self._sources["chainlink"]
        if config.pyth_feed and "pyth" in self._sources:
            if family == ChainFamily.SOLANA:
                return self._sources["pyth"]
        if config.coingecko_id and "coingecko" in self._sources:
            return self._sources["coingecko"]
        return self._sources["synthetic"]

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_price(self, config: TokenPriceConfig, as_of: Optional[float] = None) -> Optional[PriceQuote]:
        """Refresh one symbol from its source.

        Failures are logged and leave the previous quote in place.

        Returns:
            The new quote, or None if the update failed
        """
        symbol = config.symbol.upper()
        as_of = self._clock() if as_of is None else as_of
        source = self.select_source(config)

        self._states[symbol] = PriceState.UPDATING
        try:
            quote = await source.fetch(config, as_of)
        except Exception as e:
            self._states[symbol] = PriceState.STALE
            error = e if isinstance(e, PriceSourceError) else PriceSourceError(symbol, source.name, str(e))
            logger.warning(str(error))
            return None

        self._prices[symbol] = quote
        self._states[symbol] = PriceState.FRESH
        self._notify(symbol, quote)
        return quote

    async def update_all(self) -> list[str]:
        """Run one update cycle over every configured symbol.

        Returns:
            Symbols that updated successfully
        """
        as_of = self._clock()
        configs = list(self._configs.values())
        results = await asyncio.gather(*(self.update_price(c, as_of) for c in configs))
        updated = [c.symbol.upper() for c, quote in zip(configs, results) if quote is not None]
        logger.debug(f"Price cycle: {len(updated)}/{len(configs)} symbols updated")
        return updated

    def _notify(self, symbol: str, quote: PriceQuote) -> None:
        for subscription in list(self._subscriptions):
            try:
                subscription._deliver(symbol, quote)
            except Exception as e:
                logger.error(f"Price subscriber failed for {symbol}: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Fetch every price once, then keep polling in the background."""
        if self.is_running:
            return
        logger.info(f"Starting price feed for {len(self._configs)} symbols")
        await self.update_all()
        self._task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.price_poll_interval)
            await self.update_all()

    async def stop(self) -> None:
        """Stop polling and drop every subscription."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        for subscription in self._subscriptions:
            subscription._close()
        self._subscriptions.clear()

        for source in self._sources.values():
            await source.close()
        logger.info("Price feed stopped")

    # ------------------------------------------------------------------
    # Subscriptions and reads
    # ------------------------------------------------------------------

    def subscribe_to_updates(self, callback: PriceCallback) -> Subscription:
        """Register a callback invoked with (symbol, quote) after every successful update."""
        subscription = Subscription(callback, self._unsubscribe)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def get_all_prices(self) -> dict[str, PriceQuote]:
        """Point-in-time copy of the price table."""
        return dict(self._prices)

    def get_price(self, symbol: str) -> Optional[PriceQuote]:
        return self._prices.get(symbol.upper())

    def get_state(self, symbol: str) -> PriceState:
        return self._states.get(symbol.upper(), PriceState.STALE)

    def get_token_config(self, symbol: str) -> Optional[TokenPriceConfig]:
        return self._configs.get(symbol.upper())

    def get_supported_tokens(self) -> list[str]:
        return list(self._configs)

    def get_tokens_for_chain(self, chain: str) -> list[TokenPriceConfig]:
        return [c for c in self._configs.values() if c.chain == chain]
