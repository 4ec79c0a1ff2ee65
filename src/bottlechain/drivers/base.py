"""Abstract chain driver interface.

Each chain family needs a different RPC surface. Drivers hide that behind one
contract so the chain service, price sources and swap venues stay
chain-agnostic.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import AsyncIterator, Optional

from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers.rpc import JsonRpcClient
from bottlechain.errors import ConfirmationTimeoutError
from bottlechain.units import format_units

logger = logging.getLogger(__name__)


class TxStatus(str, Enum):
    """Status of an on-chain transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenInfo:
    """Token metadata read from chain state."""

    address: str
    name: Optional[str]
    symbol: Optional[str]
    decimals: int
    total_supply: int


@dataclass(frozen=True)
class TransactionRecord:
    """One entry of an address's transaction history."""

    hash: str
    from_address: Optional[str]
    to_address: Optional[str]
    amount: Decimal  # native currency, human units
    timestamp: Optional[int]  # unix seconds
    status: TxStatus


@dataclass(frozen=True)
class Confirmation:
    """Result of a submitted transaction once the chain confirmed it."""

    chain_id: str
    tx_hash: str
    status: TxStatus
    block: Optional[int] = None  # block number (EVM) or slot (Solana)
    fee: Optional[int] = None  # raw native units
    simulated: bool = False


class ChainDriver(ABC):
    """Uniform operations over one chain."""

    def __init__(
        self,
        chain: ChainDescriptor,
        rpc: JsonRpcClient,
        confirmation_timeout: float = 180.0,
        poll_interval: float = 2.0,
    ):
        self.chain = chain
        self.rpc = rpc
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    @property
    def chain_id(self) -> str:
        return self.chain.id

    @abstractmethod
    def validate_address(self, address: str) -> str:
        """Return the normalized address or raise InvalidAddressError."""
        pass

    @abstractmethod
    async def get_raw_balance(self, address: str, token: Optional[TokenDescriptor] = None) -> int:
        """Get balance in the token's smallest unit.

        Args:
            address: Wallet address
            token: Token to query; native currency when omitted or native
        """
        pass

    async def get_balance(self, address: str, token: Optional[TokenDescriptor] = None) -> Decimal:
        """Get balance in human units (raw / 10^decimals)."""
        raw = await self.get_raw_balance(address, token)
        decimals = token.decimals if token is not None else self.chain.native_decimals
        return format_units(raw, decimals)

    @abstractmethod
    async def get_token_info(self, token_address: str) -> TokenInfo:
        """Read token metadata. Raises TokenNotFoundError."""
        pass

    @abstractmethod
    def get_transaction_history(self, address: str) -> AsyncIterator[TransactionRecord]:
        """Lazily iterate the address's transactions, newest first."""
        pass

    @abstractmethod
    async def broadcast(self, signed_payload: str) -> str:
        """Submit a signed transaction and return its hash/signature."""
        pass

    @abstractmethod
    async def get_confirmation(self, tx_hash: str) -> Optional[Confirmation]:
        """Return the confirmation if the chain has confirmed the tx, else None."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Cheap liveness call against the endpoint."""
        pass

    async def send_transaction(self, signed_payload: str) -> Confirmation:
        """Broadcast a signed transaction and wait for confirmation.

        Raises:
            TransactionRejectedError: simulation/validation failure or reverted
            ConfirmationTimeoutError: no confirmation within the bounded wait
        """
        tx_hash = await self.broadcast(signed_payload)
        logger.info(f"[{self.chain_id}] broadcast {tx_hash}, waiting for confirmation")
        return await self.wait_for_confirmation(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str) -> Confirmation:
        """Poll until the transaction is confirmed or the wait expires."""
        deadline = time.monotonic() + self.confirmation_timeout
        while True:
            confirmation = await self.get_confirmation(tx_hash)
            if confirmation is not None:
                logger.info(f"[{self.chain_id}] {tx_hash} {confirmation.status.value}")
                return confirmation
            if time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(
                    f"No confirmation for {tx_hash} after {self.confirmation_timeout:.0f}s",
                    chain_id=self.chain_id,
                    tx_hash=tx_hash,
                )
            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        """Release network resources."""
        await self.rpc.close()
