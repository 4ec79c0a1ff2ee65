"""Bridge collaborator boundary for moving the intermediary asset between chains."""

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from bottlechain.chains import ChainDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeReceipt:
    """Outcome of a completed bridge transfer."""

    token: str
    from_chain: str
    to_chain: str
    amount_sent: Decimal
    amount_received: Decimal
    source_tx_hash: str
    destination_tx_hash: Optional[str] = None
    simulated: bool = False


class Bridge(ABC):
    """Moves a token from one chain to another and reports what arrived."""

    @abstractmethod
    async def transfer(
        self,
        token: str,
        from_chain: ChainDescriptor,
        to_chain: ChainDescriptor,
        amount: Decimal,
        recipient: str,
    ) -> BridgeReceipt:
        """Bridge `amount` of `token` and wait until it is spendable on `to_chain`."""
        pass


class DryRunBridge(Bridge):
    """Simulated bridge for dry-run mode and tests.

    Delivers the amount minus the configured fee without touching any chain.
    """

    def __init__(self, fee_percent: Decimal = Decimal("0.1")):
        self.fee_percent = fee_percent

    async def transfer(
        self,
        token: str,
        from_chain: ChainDescriptor,
        to_chain: ChainDescriptor,
        amount: Decimal,
        recipient: str,
    ) -> BridgeReceipt:
        received = amount * (100 - self.fee_percent) / 100
        logger.info(
            f"[dry-run] bridged {amount} {token} {from_chain.id} -> {to_chain.id}, "
            f"{received} delivered to {recipient}"
        )
        return BridgeReceipt(
            token=token,
            from_chain=from_chain.id,
            to_chain=to_chain.id,
            amount_sent=amount,
            amount_received=received,
            source_tx_hash=f"sim_bridge_{secrets.token_hex(16)}",
            destination_tx_hash=f"sim_bridge_{secrets.token_hex(16)}",
            simulated=True,
        )
