"""Chain abstraction layer.

Routes chain-id-qualified requests to the driver for that chain. Drivers are
constructed lazily, at most once per chain, and reused until close().
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncIterator, Callable, Optional

import httpx

from bottlechain.chains import ChainDescriptor, ChainRegistry, TokenDescriptor
from bottlechain.config import Settings, get_settings
from bottlechain.drivers.base import ChainDriver, Confirmation, TokenInfo, TransactionRecord
from bottlechain.drivers.factory import create_driver
from bottlechain.errors import BottleChainError, RpcError
from bottlechain.units import format_units

logger = logging.getLogger(__name__)

DriverFactory = Callable[[ChainDescriptor], ChainDriver]


@dataclass(frozen=True)
class Balance:
    """Balance of one token for one address, produced on demand."""

    chain_id: str
    address: str
    token_symbol: str
    raw_amount: int
    human_amount: Decimal


class ChainService:
    """Single entry point for balance, token, history and send operations."""

    def __init__(
        self,
        registry: ChainRegistry,
        settings: Optional[Settings] = None,
        driver_factory: Optional[DriverFactory] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self._driver_factory = driver_factory or (lambda chain: create_driver(chain, self.settings))
        self._drivers: dict[str, ChainDriver] = {}

    def resolve(self, chain_id: str) -> ChainDriver:
        """Get the driver for a chain, constructing it on first use.

        Raises:
            NoProviderError: if the chain id is not in the registry
        """
        driver = self._drivers.get(chain_id)
        if driver is None:
            chain = self.registry.get_chain(chain_id)
            driver = self._driver_factory(chain)
            self._drivers[chain_id] = driver
        return driver

    @property
    def active_chains(self) -> list[str]:
        """Chain ids whose driver has been constructed."""
        return list(self._drivers)

    async def _forward(self, chain_id: str, operation: str, call):
        try:
            return await call
        except BottleChainError as e:
            if e.chain_id is None:
                e.chain_id = chain_id
            raise
        except httpx.HTTPError as e:
            raise RpcError(f"{operation} failed: {e}", chain_id) from e

    async def get_balance(
        self, chain_id: str, address: str, token: Optional[TokenDescriptor] = None
    ) -> Decimal:
        """Get human-unit balance; native currency when token is omitted."""
        driver = self.resolve(chain_id)
        return await self._forward(chain_id, "get_balance", driver.get_balance(address, token))

    async def get_balance_record(
        self, chain_id: str, address: str, token: Optional[TokenDescriptor] = None
    ) -> Balance:
        """Get a full Balance record (raw and human amounts)."""
        driver = self.resolve(chain_id)
        token = token or self.registry.native_token(chain_id)
        raw = await self._forward(chain_id, "get_balance", driver.get_raw_balance(address, token))
        return Balance(
            chain_id=chain_id,
            address=address,
            token_symbol=token.symbol,
            raw_amount=raw,
            human_amount=format_units(raw, token.decimals),
        )

    async def get_token_info(self, chain_id: str, token_address: str) -> TokenInfo:
        """Read token metadata, filling name/symbol from the registry when the chain lacks them."""
        driver = self.resolve(chain_id)
        info = await self._forward(chain_id, "get_token_info", driver.get_token_info(token_address))
        if info.name is None or info.symbol is None:
            listed = self.registry.find_token_by_address(chain_id, token_address)
            if listed is not None:
                info = TokenInfo(
                    address=info.address,
                    name=info.name or listed.name,
                    symbol=info.symbol or listed.symbol,
                    decimals=info.decimals,
                    total_supply=info.total_supply,
                )
        return info

    async def get_transaction_history(self, chain_id: str, address: str) -> AsyncIterator[TransactionRecord]:
        """Lazily iterate an address's transactions, newest first."""
        driver = self.resolve(chain_id)
        history = driver.get_transaction_history(address)
        try:
            while True:
                try:
                    record = await history.__anext__()
                except StopAsyncIteration:
                    return
                except BottleChainError as e:
                    if e.chain_id is None:
                        e.chain_id = chain_id
                    raise
                except httpx.HTTPError as e:
                    raise RpcError(f"get_transaction_history failed: {e}", chain_id) from e
                yield record
        finally:
            await history.aclose()

    async def send_transaction(self, chain_id: str, signed_payload: str) -> Confirmation:
        """Broadcast a signed payload and wait for the chain's confirmation."""
        driver = self.resolve(chain_id)
        return await self._forward(chain_id, "send_transaction", driver.send_transaction(signed_payload))

    async def ping(self, chain_id: str) -> bool:
        driver = self.resolve(chain_id)
        return await self._forward(chain_id, "ping", driver.ping())

    async def close(self) -> None:
        """Close every constructed driver."""
        for chain_id, driver in list(self._drivers.items()):
            try:
                await driver.close()
            except Exception as e:
                logger.warning(f"Error closing {chain_id} driver: {e}")
        self._drivers.clear()
