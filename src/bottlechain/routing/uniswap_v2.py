"""Uniswap V2-style router venue.

Serves Ethereum (Uniswap V2) and BNB Chain (PancakeSwap V2): both expose the
same router, factory and pair contracts.

Quotes come from `getAmountsOut`; price impact from the pair's reserves.
Swaps go through `swapExact*` with an ERC-20 approval first when needed.
"""

import logging
import time
from decimal import Decimal
from typing import Callable, Optional

from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers import abi
from bottlechain.errors import JsonRpcError, NoProviderError
from bottlechain.routing.base import ExchangeVenue, SwapLeg
from bottlechain.signing import TransactionSigner, UnsignedTransaction
from bottlechain.units import floor_units, format_units

logger = logging.getLogger(__name__)

# Uniswap V2 Router on Ethereum
UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

# PancakeSwap Router V2 on BSC
PANCAKESWAP_ROUTER = "0x10ED43C718714eb63d5aA57B78B54704E256024E"
WBNB = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"

ZERO_ADDRESS = "0x" + "0" * 40

# Leg settlement estimate for EVM venues
EVM_SWAP_TIME_SECONDS = 300


class UniswapV2Venue(ExchangeVenue):
    """Constant-product AMM router on an EVM chain."""

    def __init__(
        self,
        chain: ChainDescriptor,
        chain_service: ChainService,
        router_address: str,
        wrapped_native: str,
        name: str,
        fee_bps: int = 30,
        deadline_seconds: int = 20 * 60,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(chain)
        self.chain_service = chain_service
        self.router_address = router_address
        self.wrapped_native = wrapped_native
        self._name = name
        self.fee_bps = fee_bps
        self.deadline_seconds = deadline_seconds
        self._clock = clock
        self._factory: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def fee_description(self) -> str:
        return f"{(Decimal(self.fee_bps) / 100).normalize():f}%"

    @property
    def estimated_time_seconds(self) -> int:
        return EVM_SWAP_TIME_SECONDS

    @property
    def _driver(self):
        return self.chain_service.resolve(self.chain.id)

    def _address(self, token: TokenDescriptor) -> str:
        return self.wrapped_native if token.is_native else token.address

    async def get_amounts_out(self, amount_in: Decimal, path: list[TokenDescriptor]) -> list[Decimal]:
        raw_in = floor_units(amount_in, path[0].decimals)
        data = abi.encode_get_amounts_out(raw_in, [self._address(t) for t in path])
        try:
            result = await self._driver.eth_call(self.router_address, data)
        except JsonRpcError as e:
            # Router reverts when a pair is missing or has no liquidity
            symbols = "/".join(t.symbol for t in path)
            raise NoProviderError(f"{self.name} has no liquidity for {symbols}: {e}", self.chain.id) from e

        amounts = abi.decode_uint_array(result)
        return [format_units(raw, token.decimals) for raw, token in zip(amounts, path)]

    async def _get_factory(self) -> str:
        if self._factory is None:
            result = await self._driver.eth_call(self.router_address, abi.FACTORY)
            self._factory = abi.decode_address(result)
        return self._factory

    async def get_price_impact(self, amount_in: Decimal, path: list[TokenDescriptor]) -> Decimal:
        """Impact of the first hop against the pair's current reserves."""
        token_in = self._address(path[0])
        token_out = self._address(path[1])
        factory = await self._get_factory()

        pair = abi.decode_address(
            await self._driver.eth_call(
                factory,
                abi.encode_call(abi.GET_PAIR, abi.encode_address(token_in), abi.encode_address(token_out)),
            )
        )
        if int(pair, 16) == 0:
            return Decimal("0")

        reserves = await self._driver.eth_call(pair, abi.GET_RESERVES)
        token0 = abi.decode_address(await self._driver.eth_call(pair, abi.TOKEN0))
        reserve_in = abi.decode_uint(reserves, 0 if token0.lower() == token_in.lower() else 1)

        raw_in = floor_units(amount_in, path[0].decimals)
        if reserve_in + raw_in == 0:
            return Decimal("0")
        impact = Decimal(raw_in) * 100 / Decimal(reserve_in + raw_in)
        return impact.quantize(Decimal("0.0001"))

    async def _send(self, signer: TransactionSigner, tx: UnsignedTransaction) -> tuple[str, int]:
        signed = await signer.sign(self.chain, tx)
        confirmation = await self.chain_service.send_transaction(self.chain.id, signed)
        return confirmation.tx_hash, confirmation.fee or 0

    async def _ensure_allowance(
        self, signer: TransactionSigner, owner: str, token: TokenDescriptor, raw_amount: int
    ) -> Optional[tuple[str, int]]:
        allowance = await self._driver.get_allowance(token.address, owner, self.router_address)
        if allowance >= raw_amount:
            return None

        logger.info(f"[{self.chain.id}] approving {self.name} router for {token.symbol}")
        tx = UnsignedTransaction(
            chain_id=self.chain.id,
            description=f"Approve {self.name} to spend {token.symbol}",
            evm_call={
                "from": owner,
                "to": token.address,
                "data": abi.encode_call(
                    abi.APPROVE, abi.encode_address(self.router_address), abi.encode_uint(abi.MAX_UINT256)
                ),
                "value": "0x0",
                "chainId": self.chain.evm_chain_id,
            },
        )
        return await self._send(signer, tx)

    async def swap(
        self,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount_in: Decimal,
        min_out: Decimal,
        slippage_pct: Decimal,
        signer: TransactionSigner,
    ) -> SwapLeg:
        owner = await signer.get_address(self.chain)
        raw_in = floor_units(amount_in, from_token.decimals)
        raw_min_out = floor_units(min_out, to_token.decimals)
        path = [self._address(from_token), self._address(to_token)]
        deadline = int(self._clock()) + self.deadline_seconds

        leg = SwapLeg(
            chain_id=self.chain.id,
            venue=self.name,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount_in=amount_in,
            min_out=min_out,
        )

        value = 0
        if from_token.is_native:
            data = abi.encode_swap_exact_eth(raw_min_out, path, owner, deadline)
            value = raw_in
        else:
            approval = await self._ensure_allowance(signer, owner, from_token, raw_in)
            if approval is not None:
                leg.tx_hashes.append(approval[0])
                leg.native_fee += approval[1]
            selector = (
                abi.SWAP_EXACT_TOKENS_FOR_ETH if to_token.is_native else abi.SWAP_EXACT_TOKENS_FOR_TOKENS
            )
            data = abi.encode_swap_exact_tokens(selector, raw_in, raw_min_out, path, owner, deadline)

        tx = UnsignedTransaction(
            chain_id=self.chain.id,
            description=(
                f"Swap {amount_in} {from_token.symbol} for at least {min_out} {to_token.symbol} "
                f"on {self.name}"
            ),
            evm_call={
                "from": owner,
                "to": self.router_address,
                "data": data,
                "value": hex(value),
                "chainId": self.chain.evm_chain_id,
            },
            metadata={"deadline": deadline, "min_out_raw": raw_min_out},
        )
        signed = await signer.sign(self.chain, tx)
        confirmation = await self.chain_service.send_transaction(self.chain.id, signed)

        leg.tx_hashes.append(confirmation.tx_hash)
        leg.native_fee += confirmation.fee or 0
        leg.confirmation = confirmation
        logger.info(
            f"[{self.chain.id}] {self.name} swap {amount_in} {from_token.symbol} -> "
            f"{to_token.symbol} confirmed: {confirmation.tx_hash}"
        )
        return leg
