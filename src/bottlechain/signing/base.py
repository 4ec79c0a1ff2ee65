"""Signer collaborator boundary.

Signing flow:
1. The core builds an unsigned transaction
2. The signer returns a signed, serialized payload (keys never reach the core)
3. The core broadcasts the payload through the chain driver
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from bottlechain.chains import ChainDescriptor

logger = logging.getLogger(__name__)


@dataclass
class UnsignedTransaction:
    """Transaction prepared by the core, to be completed and signed by the wallet.

    Attributes:
        chain_id: Chain the transaction targets
        description: Human-readable summary for confirmation prompts
        evm_call: EVM call fields (from, to, data, value, chainId); the signer
            fills nonce and gas
        serialized: Base64 serialized transaction (Solana), signature slots empty
    """

    chain_id: str
    description: str
    evm_call: Optional[dict] = None
    serialized: Optional[str] = None
    metadata: dict = field(default_factory=dict)


class TransactionSigner(ABC):
    """Abstract wallet signer.

    Implementations should NEVER expose raw private keys.
    """

    @abstractmethod
    async def get_address(self, chain: ChainDescriptor) -> str:
        """Get the wallet address used on a chain."""
        pass

    @abstractmethod
    async def sign(self, chain: ChainDescriptor, tx: UnsignedTransaction) -> str:
        """Sign a transaction.

        Returns:
            Signed payload ready for broadcast: 0x-prefixed raw transaction
            for EVM chains, base64 wire transaction for Solana
        """
        pass
