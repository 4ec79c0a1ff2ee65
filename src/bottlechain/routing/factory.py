"""Factory for per-chain exchange venues."""

import logging
from decimal import Decimal
from typing import Optional

from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainDescriptor, ChainFamily
from bottlechain.config import Settings, get_settings
from bottlechain.errors import NoProviderError
from bottlechain.routing.base import ExchangeVenue
from bottlechain.routing.raydium import RAYDIUM_SWAP_TIME_SECONDS, RaydiumVenue
from bottlechain.routing.simulated import SimulatedVenue
from bottlechain.routing.uniswap_v2 import (
    EVM_SWAP_TIME_SECONDS,
    PANCAKESWAP_ROUTER,
    UNISWAP_V2_ROUTER,
    WBNB,
    WETH,
    UniswapV2Venue,
)

logger = logging.getLogger(__name__)

# chain id -> (router, wrapped native, venue name, fee in basis points)
UNISWAP_V2_DEPLOYMENTS: dict[str, tuple[str, str, str, int]] = {
    "ethereum": (UNISWAP_V2_ROUTER, WETH, "Uniswap V2", 30),
    "binance": (PANCAKESWAP_ROUTER, WBNB, "PancakeSwap V2", 25),
}

# Simulated stand-ins keep the real venue's name, fee and timing
SIMULATED_PROFILES: dict[str, tuple[str, Decimal, int]] = {
    "ethereum": ("Uniswap V2", Decimal("0.3"), EVM_SWAP_TIME_SECONDS),
    "binance": ("PancakeSwap V2", Decimal("0.25"), EVM_SWAP_TIME_SECONDS),
    "solana": ("Raydium", Decimal("0.3"), RAYDIUM_SWAP_TIME_SECONDS),
    "bottle-chain": ("BottleSwap", Decimal("0.3"), 60),
}


def create_venue(
    chain: ChainDescriptor,
    chain_service: ChainService,
    settings: Optional[Settings] = None,
) -> ExchangeVenue:
    """Create the exchange venue that serves a chain.

    Dry-run mode and custom chains get a simulated venue.

    Raises:
        NoProviderError: if no venue is known for the chain
    """
    settings = settings or get_settings()

    if settings.dry_run or chain.family == ChainFamily.CUSTOM:
        name, fee, eta = SIMULATED_PROFILES.get(chain.id, (f"{chain.name} AMM", Decimal("0.3"), 60))
        logger.info(f"Using simulated venue {name} for {chain.id}")
        return SimulatedVenue(chain, name=name, fee_percent=fee, estimated_time_seconds=eta)

    if chain.family == ChainFamily.SOLANA:
        return RaydiumVenue(
            chain, chain_service, api_url=settings.raydium_api_url, timeout=settings.rpc_timeout
        )

    deployment = UNISWAP_V2_DEPLOYMENTS.get(chain.id)
    if deployment is None:
        raise NoProviderError(f"No exchange venue configured for {chain.id}", chain.id)

    router, wrapped_native, name, fee_bps = deployment
    return UniswapV2Venue(
        chain,
        chain_service,
        router_address=router,
        wrapped_native=wrapped_native,
        name=name,
        fee_bps=fee_bps,
        deadline_seconds=settings.evm_swap_deadline_seconds,
    )
