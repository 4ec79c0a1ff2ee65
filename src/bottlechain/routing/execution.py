"""Pollable handle for a running swap execution."""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from bottlechain.bridge import BridgeReceipt
from bottlechain.errors import PartialSwapError, SwapExecutionError
from bottlechain.routing.base import SwapLeg, SwapParams

logger = logging.getLogger(__name__)


class SwapStatus(str, Enum):
    """Execution progress."""

    PENDING = "pending"
    SOURCE_LEG = "source_leg"
    BRIDGING = "bridging"
    DESTINATION_LEG = "destination_leg"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


@dataclass
class SwapResult:
    """Outcome of a completed swap."""

    params: SwapParams
    amount_out: Optional[Decimal]
    legs: list[SwapLeg] = field(default_factory=list)
    bridge_receipt: Optional[BridgeReceipt] = None

    @property
    def tx_hashes(self) -> list[str]:
        hashes = [h for leg in self.legs for h in leg.tx_hashes]
        if self.bridge_receipt is not None:
            hashes.append(self.bridge_receipt.source_tx_hash)
        return hashes


class SwapHandle:
    """Tracks one execute_swap call.

    The swap runs in its own task. cancel() only succeeds before the source
    leg is submitted; after that the execution always runs to completion
    and wait() can be abandoned without aborting it.
    """

    def __init__(self, params: SwapParams):
        self.params = params
        self.status = SwapStatus.PENDING
        self.error: Optional[BaseException] = None
        self.bridge_receipt: Optional[BridgeReceipt] = None
        self._legs: list[SwapLeg] = []
        self._committed = False
        self._task: Optional[asyncio.Task] = None

    def _attach(self, task: asyncio.Task) -> None:
        self._task = task
        task.add_done_callback(self._on_done)

    def _commit(self) -> None:
        self._committed = True
        self.status = SwapStatus.SOURCE_LEG

    def _add_leg(self, leg: SwapLeg) -> None:
        self._legs.append(leg)

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            self.status = SwapStatus.CANCELLED
            return
        self.error = task.exception()
        if self.error is None:
            self.status = SwapStatus.COMPLETED
        elif isinstance(self.error, PartialSwapError):
            self.status = SwapStatus.PARTIAL
            logger.error(f"Swap partially completed: {self.error}")
        else:
            self.status = SwapStatus.FAILED
            logger.warning(f"Swap failed: {self.error}")

    @property
    def legs(self) -> tuple[SwapLeg, ...]:
        return tuple(self._legs)

    @property
    def committed(self) -> bool:
        """True once the source leg has been handed to the chain."""
        return self._committed

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> bool:
        """Abort the swap if nothing has been submitted yet.

        Returns:
            True if the swap was cancelled
        """
        if self._committed or self._task is None or self._task.done():
            return False
        self._task.cancel()
        logger.info(f"Swap {self.params.from_token}->{self.params.to_token} cancelled before submission")
        return True

    async def wait(self) -> SwapResult:
        """Wait for the outcome.

        Raises:
            SwapExecutionError: the swap failed, was cancelled, or only
                partially completed (PartialSwapError)
        """
        if self._task is None:
            raise SwapExecutionError("Swap was never started", self.params.from_chain)
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                raise SwapExecutionError(
                    "Swap was cancelled before submission", self.params.from_chain
                ) from None
            raise
