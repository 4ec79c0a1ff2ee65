"""Factory for chain drivers, selected by chain family."""

import logging
from typing import Optional

import httpx

from bottlechain.chains import ChainDescriptor, ChainFamily
from bottlechain.config import Settings, get_settings
from bottlechain.drivers.base import ChainDriver
from bottlechain.drivers.evm import EvmDriver
from bottlechain.drivers.rpc import JsonRpcClient
from bottlechain.drivers.solana import SolanaDriver

logger = logging.getLogger(__name__)


def create_driver(
    chain: ChainDescriptor,
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ChainDriver:
    """Create the driver variant for a chain's family.

    Custom chains expose EVM-compatible JSON-RPC and share the EVM driver.

    Args:
        chain: Chain descriptor
        settings: Settings for timeouts and explorer keys
        http_client: Optional shared client (tests inject a mock transport)
    """
    settings = settings or get_settings()
    rpc = JsonRpcClient(chain.rpc_url, chain.id, timeout=settings.rpc_timeout, client=http_client)
    options = {
        "confirmation_timeout": settings.confirmation_timeout,
        "poll_interval": settings.confirmation_poll_interval,
    }

    if chain.family == ChainFamily.SOLANA:
        logger.info(f"Created Solana driver for {chain.id} ({chain.rpc_url})")
        return SolanaDriver(chain, rpc, **options)

    if chain.family in (ChainFamily.EVM, ChainFamily.CUSTOM):
        logger.info(f"Created EVM driver for {chain.id} ({chain.rpc_url})")
        return EvmDriver(
            chain,
            rpc,
            explorer_api_key=settings.get_explorer_api_key(chain.id),
            http_client=http_client,
            **options,
        )

    raise ValueError(f"Unsupported chain family: {chain.family}")
