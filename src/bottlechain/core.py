"""Composition root.

WalletCore builds and owns one instance of each component. Presentation code
talks to the core only through the entry points exposed here.
"""

import logging
from decimal import Decimal
from typing import Optional

from bottlechain.bridge import Bridge, DryRunBridge
from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainRegistry, TokenDescriptor, default_registry
from bottlechain.config import Settings, get_settings
from bottlechain.network import ChainStatus, NetworkMonitor
from bottlechain.prices import PriceFeedAggregator, PriceQuote, Subscription
from bottlechain.prices.feed import PriceCallback
from bottlechain.routing import SwapHandle, SwapParams, SwapQuote, SwapRouter
from bottlechain.signing import TransactionSigner

logger = logging.getLogger(__name__)


class WalletCore:
    """Owns the chain service, price feed, swap router and network monitor."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ChainRegistry] = None,
        chain_service: Optional[ChainService] = None,
        price_feed: Optional[PriceFeedAggregator] = None,
        router: Optional[SwapRouter] = None,
        network_monitor: Optional[NetworkMonitor] = None,
        signer: Optional[TransactionSigner] = None,
        bridge: Optional[Bridge] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or (
            chain_service.registry if chain_service is not None else default_registry(self.settings)
        )
        self.chain_service = chain_service or ChainService(self.registry, self.settings)

        if bridge is None and self.settings.dry_run:
            bridge = DryRunBridge(self.settings.bridge_fee_percent)

        self.price_feed = price_feed or PriceFeedAggregator(self.chain_service, settings=self.settings)
        self.router = router or SwapRouter(
            self.chain_service, settings=self.settings, signer=signer, bridge=bridge
        )
        self.network_monitor = network_monitor or NetworkMonitor(self.chain_service, self.settings)
        self._started = False

    async def start(self) -> None:
        """Start background polling (prices and network status)."""
        if self._started:
            return
        logger.info(
            f"Starting wallet core ({len(self.registry.chains)} chains, dry_run={self.settings.dry_run})"
        )
        await self.price_feed.start()
        await self.network_monitor.start()
        self._started = True

    async def stop(self) -> None:
        """Stop polling and release every network resource."""
        await self.network_monitor.stop()
        await self.price_feed.stop()
        await self.router.close()
        await self.chain_service.close()
        self._started = False
        logger.info("Wallet core stopped")

    async def __aenter__(self) -> "WalletCore":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Presentation entry points
    # ------------------------------------------------------------------

    def subscribe_to_updates(self, callback: PriceCallback) -> Subscription:
        return self.price_feed.subscribe_to_updates(callback)

    def get_all_prices(self) -> dict[str, PriceQuote]:
        return self.price_feed.get_all_prices()

    async def get_swap_quote(self, params: SwapParams) -> SwapQuote:
        return await self.router.get_swap_quote(params)

    async def execute_swap(self, params: SwapParams) -> SwapHandle:
        return await self.router.execute_swap(params)

    async def get_balance(
        self, chain_id: str, address: str, token: Optional[TokenDescriptor] = None
    ) -> Decimal:
        return await self.chain_service.get_balance(chain_id, address, token)

    def network_status(self) -> dict[str, ChainStatus]:
        return self.network_monitor.get_status()
