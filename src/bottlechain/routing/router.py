"""Swap router.

Same-chain swaps go to the chain's single exchange venue. Cross-chain swaps
are composed from two same-chain legs joined by a bridge transfer of the
intermediary stablecoin:

    from_token -> BRIDGE (source chain) ~~bridge~~> BRIDGE -> to_token (destination chain)

Execution is strictly sequential. The destination leg is sized by what the
bridge actually delivered, never by the source-leg quote.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Callable, Optional

from bottlechain.bridge import Bridge
from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainDescriptor, ChainRegistry, TokenDescriptor
from bottlechain.config import Settings, get_settings
from bottlechain.errors import (
    BottleChainError,
    ConfirmationTimeoutError,
    PartialSwapError,
    SwapExecutionError,
)
from bottlechain.routing.base import ExchangeVenue, SwapLeg, SwapParams, SwapQuote
from bottlechain.routing.execution import SwapHandle, SwapResult, SwapStatus
from bottlechain.routing.factory import create_venue
from bottlechain.signing import TransactionSigner
from bottlechain.units import format_units

logger = logging.getLogger(__name__)

VenueFactory = Callable[[ChainDescriptor], ExchangeVenue]


class SwapRouter:
    """Quotes and executes swaps across the configured chains."""

    def __init__(
        self,
        chain_service: ChainService,
        settings: Optional[Settings] = None,
        signer: Optional[TransactionSigner] = None,
        bridge: Optional[Bridge] = None,
        venue_factory: Optional[VenueFactory] = None,
    ):
        self.chain_service = chain_service
        self.settings = settings or get_settings()
        self.signer = signer
        self.bridge = bridge
        self._venue_factory = venue_factory or (
            lambda chain: create_venue(chain, self.chain_service, self.settings)
        )
        self._venues: dict[str, ExchangeVenue] = {}
        # Running executions, held until done even if the caller drops the handle
        self._tasks: set[asyncio.Task] = set()

    @property
    def registry(self) -> ChainRegistry:
        return self.chain_service.registry

    @property
    def bridge_token(self) -> str:
        return self.settings.bridge_token

    def get_venue(self, chain_id: str) -> ExchangeVenue:
        """Get the exchange venue serving a chain (created on first use).

        Raises:
            NoProviderError: unknown chain or no venue for it
        """
        venue = self._venues.get(chain_id)
        if venue is None:
            venue = self._venue_factory(self.registry.get_chain(chain_id))
            self._venues[chain_id] = venue
        return venue

    def _token(self, chain_id: str, symbol: str) -> TokenDescriptor:
        return self.registry.find_token(chain_id, symbol)

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def _identity_quote(self, chain_id: str, token: TokenDescriptor, amount: Decimal) -> SwapQuote:
        """A leg whose input is already the output token."""
        return SwapQuote(
            estimated_output=amount,
            price_impact_pct=Decimal("0"),
            fee_description="0%",
            route=(token.symbol, token.symbol),
            estimated_time_seconds=0,
            venue="none",
            from_chain=chain_id,
            to_chain=chain_id,
            amount_in=amount,
        )

    async def _leg_quote(self, chain_id: str, from_symbol: str, to_symbol: str, amount: Decimal) -> SwapQuote:
        from_token = self._token(chain_id, from_symbol)
        to_token = self._token(chain_id, to_symbol)
        if from_token.symbol == to_token.symbol:
            return self._identity_quote(chain_id, from_token, amount)
        return await self.get_venue(chain_id).get_quote(from_token, to_token, amount)

    async def get_swap_quote(self, params: SwapParams) -> SwapQuote:
        """Quote a swap without applying slippage.

        Raises:
            NoProviderError: unknown chain or no venue/liquidity
            TokenNotFoundError: token not listed on its chain
            RpcError: venue or chain endpoint unreachable
        """
        amount = params.amount_decimal
        if not params.is_cross_chain:
            return await self._leg_quote(params.from_chain, params.from_token, params.to_token, amount)

        source = await self._leg_quote(params.from_chain, params.from_token, self.bridge_token, amount)
        destination = await self._leg_quote(
            params.to_chain, self.bridge_token, params.to_token, source.estimated_output
        )

        quote = SwapQuote(
            estimated_output=destination.estimated_output,
            price_impact_pct=source.price_impact_pct + destination.price_impact_pct,
            fee_description=(
                f"{self.settings.bridge_fee_description} + "
                f"{source.fee_description} + {destination.fee_description}"
            ),
            route=source.route + destination.route,
            estimated_time_seconds=self.settings.cross_chain_time_seconds,
            venue=f"{source.venue} + bridge + {destination.venue}",
            from_chain=params.from_chain,
            to_chain=params.to_chain,
            amount_in=amount,
            legs=(source, destination),
            simulated=source.simulated and destination.simulated,
        )
        logger.info(
            f"Cross-chain quote {amount} {params.from_token}@{params.from_chain} -> "
            f"{quote.estimated_output} {params.to_token}@{params.to_chain} via {self.bridge_token}"
        )
        return quote

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @staticmethod
    def _min_out(quoted: Decimal, slippage_pct: Decimal) -> Decimal:
        return quoted * (100 - slippage_pct) / 100

    async def execute_swap(self, params: SwapParams) -> SwapHandle:
        """Start a swap and return its handle.

        Input problems (unknown chain/token, missing signer or bridge) raise
        here, before anything is submitted.
        """
        if self.signer is None:
            raise SwapExecutionError("No transaction signer configured", params.from_chain)
        if params.is_cross_chain and self.bridge is None:
            raise SwapExecutionError("No bridge configured for cross-chain swaps", params.from_chain)

        # Fail fast on unknown chains, tokens and venues
        self._token(params.from_chain, params.from_token)
        self._token(params.to_chain, params.to_token)
        self.get_venue(params.from_chain)
        if params.is_cross_chain:
            self._token(params.from_chain, self.bridge_token)
            self._token(params.to_chain, self.bridge_token)
            self.get_venue(params.to_chain)

        handle = SwapHandle(params)
        if params.is_cross_chain:
            coro = self._execute_cross_chain(handle)
        else:
            coro = self._execute_same_chain(handle)
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        handle._attach(task)
        return handle

    @staticmethod
    def _tag_stage(error: BottleChainError, stage: str) -> None:
        if getattr(error, "stage", None) is None:
            error.stage = stage

    async def _measure_output(
        self, chain_id: str, owner: str, token: TokenDescriptor, before: Decimal, leg: SwapLeg
    ) -> Optional[Decimal]:
        """Realized leg output as the owner's balance change."""
        try:
            after = await self.chain_service.get_balance(chain_id, owner, token)
        except BottleChainError as e:
            logger.warning(f"[{chain_id}] could not read {token.symbol} balance after swap: {e}")
            return None
        realized = after - before
        if token.is_native:
            # Gas for the leg was paid out of the same balance
            realized += format_units(leg.native_fee, self.registry.get_chain(chain_id).native_decimals)
        return realized

    async def _run_leg(
        self,
        chain_id: str,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount_in: Decimal,
        min_out: Decimal,
        slippage_pct: Decimal,
    ) -> SwapLeg:
        venue = self.get_venue(chain_id)
        chain = self.registry.get_chain(chain_id)

        before = None
        owner = None
        if not venue.simulated:
            owner = await self.signer.get_address(chain)
            before = await self.chain_service.get_balance(chain_id, owner, to_token)

        leg = await venue.swap(from_token, to_token, amount_in, min_out, slippage_pct, self.signer)
        if leg.amount_out is None and before is not None:
            leg.amount_out = await self._measure_output(chain_id, owner, to_token, before, leg)
        return leg

    async def _execute_same_chain(self, handle: SwapHandle) -> SwapResult:
        params = handle.params
        chain_id = params.from_chain
        from_token = self._token(chain_id, params.from_token)
        to_token = self._token(chain_id, params.to_token)
        amount = params.amount_decimal

        if from_token.symbol == to_token.symbol:
            handle._commit()
            return SwapResult(params=params, amount_out=amount)

        quote = await self.get_venue(chain_id).get_quote(from_token, to_token, amount)
        min_out = self._min_out(quote.estimated_output, params.slippage_pct)

        handle._commit()
        try:
            leg = await self._run_leg(chain_id, from_token, to_token, amount, min_out, params.slippage_pct)
        except BottleChainError as e:
            self._tag_stage(e, "swap")
            raise
        handle._add_leg(leg)
        return SwapResult(params=params, amount_out=leg.amount_out, legs=[leg])

    async def _execute_cross_chain(self, handle: SwapHandle) -> SwapResult:
        params = handle.params
        source_chain = self.registry.get_chain(params.from_chain)
        destination_chain = self.registry.get_chain(params.to_chain)
        bridge_symbol = self.bridge_token

        from_token = self._token(source_chain.id, params.from_token)
        source_bridge_token = self._token(source_chain.id, bridge_symbol)
        destination_bridge_token = self._token(destination_chain.id, bridge_symbol)
        to_token = self._token(destination_chain.id, params.to_token)
        amount = params.amount_decimal

        # Source leg: from_token -> bridge token
        if from_token == source_bridge_token:
            handle._commit()
            bridged_amount = amount
        else:
            source_quote = await self.get_venue(source_chain.id).get_quote(
                from_token, source_bridge_token, amount
            )
            min_out = self._min_out(source_quote.estimated_output, params.slippage_pct)

            handle._commit()
            try:
                leg = await self._run_leg(
                    source_chain.id, from_token, source_bridge_token, amount, min_out, params.slippage_pct
                )
            except ConfirmationTimeoutError as e:
                # Broadcast but unconfirmed: the source asset may already be spent
                raise PartialSwapError(
                    f"Source swap {e.tx_hash} was broadcast but not confirmed: {e}. "
                    f"{amount} {from_token.symbol} on {source_chain.id} may already be swapped",
                    stage="source",
                    source_chain=source_chain.id,
                    stranded_chain=source_chain.id,
                    stranded_token=from_token.symbol,
                    stranded_amount=amount,
                    committed_tx_hashes=[e.tx_hash] if e.tx_hash else [],
                ) from e
            except BottleChainError as e:
                self._tag_stage(e, "source")
                raise
            handle._add_leg(leg)
            if leg.amount_out is None:
                raise PartialSwapError(
                    f"Source swap {leg.tx_hash} confirmed but its output could not be measured; "
                    f"at least {min_out} {bridge_symbol} is held on {source_chain.id}",
                    stage="source",
                    source_chain=source_chain.id,
                    stranded_chain=source_chain.id,
                    stranded_token=bridge_symbol,
                    stranded_amount=min_out,
                    committed_tx_hashes=list(leg.tx_hashes),
                )
            bridged_amount = leg.amount_out

        committed = [h for leg in handle.legs for h in leg.tx_hashes]

        # Bridge the realized output
        handle.status = SwapStatus.BRIDGING
        try:
            recipient = await self.signer.get_address(destination_chain)
            receipt = await self.bridge.transfer(
                bridge_symbol, source_chain, destination_chain, bridged_amount, recipient
            )
        except Exception as e:
            raise PartialSwapError(
                f"Bridge transfer failed after the source leg committed: {e}. "
                f"{bridged_amount} {bridge_symbol} remains on {source_chain.id}",
                stage="bridge",
                source_chain=source_chain.id,
                stranded_chain=source_chain.id,
                stranded_token=bridge_symbol,
                stranded_amount=bridged_amount,
                committed_tx_hashes=committed,
            ) from e
        handle.bridge_receipt = receipt
        committed.append(receipt.source_tx_hash)
        logger.info(
            f"Bridged {bridged_amount} {bridge_symbol} {source_chain.id} -> {destination_chain.id}, "
            f"{receipt.amount_received} delivered"
        )

        # Destination leg: bridge token -> to_token, sized by what arrived
        handle.status = SwapStatus.DESTINATION_LEG
        delivered = receipt.amount_received
        if to_token == destination_bridge_token:
            return SwapResult(
                params=params, amount_out=delivered, legs=list(handle.legs), bridge_receipt=receipt
            )

        try:
            destination_quote = await self.get_venue(destination_chain.id).get_quote(
                destination_bridge_token, to_token, delivered
            )
            min_out = self._min_out(destination_quote.estimated_output, params.slippage_pct)
            leg = await self._run_leg(
                destination_chain.id,
                destination_bridge_token,
                to_token,
                delivered,
                min_out,
                params.slippage_pct,
            )
        except Exception as e:
            raise PartialSwapError(
                f"Destination swap failed after bridging: {e}. "
                f"{delivered} {bridge_symbol} remains on {destination_chain.id}",
                stage="destination",
                source_chain=source_chain.id,
                stranded_chain=destination_chain.id,
                stranded_token=bridge_symbol,
                stranded_amount=delivered,
                committed_tx_hashes=committed,
            ) from e

        handle._add_leg(leg)
        return SwapResult(
            params=params, amount_out=leg.amount_out, legs=list(handle.legs), bridge_receipt=receipt
        )

    async def close(self) -> None:
        for chain_id, venue in list(self._venues.items()):
            try:
                await venue.close()
            except Exception as e:
                logger.warning(f"Error closing {chain_id} venue: {e}")
        self._venues.clear()
