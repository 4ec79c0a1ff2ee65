"""Raydium venue for Solana swaps.

Uses the Raydium trade API:
- GET  /compute/swap-base-in   quote for an exact input amount
- POST /transaction/swap-base-in   serialized transactions for that quote

API docs: https://docs.raydium.io/raydium/traders/trade-api
"""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from bottlechain.chain_service import ChainService
from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.errors import NoProviderError, RpcError, SwapExecutionError
from bottlechain.routing.base import ExchangeVenue, SwapLeg, SwapQuote
from bottlechain.signing import TransactionSigner, UnsignedTransaction
from bottlechain.units import floor_units, format_units

logger = logging.getLogger(__name__)

RAYDIUM_API = "https://transaction-v1.raydium.io"

# Wrapped SOL mint, used for native SOL legs
WSOL_MINT = "So11111111111111111111111111111111111111112"

RAYDIUM_FEE = "0.3%"
RAYDIUM_SWAP_TIME_SECONDS = 20

# Slippage sent with quote-only requests; execution uses the caller's value
QUOTE_SLIPPAGE_BPS = 50
PRIORITY_FEE_MICRO_LAMPORTS = "100000"


class RaydiumVenue(ExchangeVenue):
    """Raydium AMM on Solana."""

    def __init__(
        self,
        chain: ChainDescriptor,
        chain_service: ChainService,
        api_url: str = RAYDIUM_API,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(chain)
        self.chain_service = chain_service
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "Raydium"

    @property
    def fee_description(self) -> str:
        return RAYDIUM_FEE

    @property
    def estimated_time_seconds(self) -> int:
        return RAYDIUM_SWAP_TIME_SECONDS

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers={"Accept": "application/json"})
        return self._client

    @staticmethod
    def _mint(token: TokenDescriptor) -> str:
        return WSOL_MINT if token.is_native else token.address

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._get_client().request(method, f"{self.api_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise RpcError(f"Raydium request failed: {e}", self.chain.id, path) from e

        if response.status_code != 200:
            raise RpcError(
                f"Raydium API error: {response.status_code} - {response.text[:200]}", self.chain.id, path
            )
        return response.json()

    async def _compute(
        self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount_in: Decimal, slippage_bps: int
    ) -> dict:
        """Full compute response (needed verbatim to build the transaction)."""
        data = await self._request(
            "GET",
            "/compute/swap-base-in",
            params={
                "inputMint": self._mint(from_token),
                "outputMint": self._mint(to_token),
                "amount": str(floor_units(amount_in, from_token.decimals)),
                "slippageBps": str(slippage_bps),
                "txVersion": "V0",
            },
        )
        if not data.get("success"):
            raise NoProviderError(
                f"Raydium has no route for {from_token.symbol}/{to_token.symbol}: {data.get('msg')}",
                self.chain.id,
            )
        return data

    async def get_amounts_out(self, amount_in: Decimal, path: list[TokenDescriptor]) -> list[Decimal]:
        data = await self._compute(path[0], path[-1], amount_in, QUOTE_SLIPPAGE_BPS)
        out = format_units(int(data["data"]["outputAmount"]), path[-1].decimals)
        return [amount_in, out]

    async def get_price_impact(self, amount_in: Decimal, path: list[TokenDescriptor]) -> Decimal:
        data = await self._compute(path[0], path[-1], amount_in, QUOTE_SLIPPAGE_BPS)
        return Decimal(str(data["data"].get("priceImpactPct", 0)))

    async def get_quote(
        self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount_in: Decimal
    ) -> SwapQuote:
        # One compute call carries both the output and the impact
        data = (await self._compute(from_token, to_token, amount_in, QUOTE_SLIPPAGE_BPS))["data"]
        return self._make_quote(
            from_token,
            to_token,
            amount_in,
            format_units(int(data["outputAmount"]), to_token.decimals),
            Decimal(str(data.get("priceImpactPct", 0))),
        )

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
        slippage_bps = int(slippage_pct * 100)
        compute = await self._compute(from_token, to_token, amount_in, slippage_bps)

        # The venue re-quotes at execution; refuse if the new bound is worse than ours
        threshold = int(compute["data"].get("otherAmountThreshold", 0))
        raw_min_out = floor_units(min_out, to_token.decimals)
        if threshold < raw_min_out:
            raise SwapExecutionError(
                f"Raydium minimum output {format_units(threshold, to_token.decimals)} "
                f"{to_token.symbol} is below {min_out}",
                self.chain.id,
            )

        body = {
            "computeUnitPriceMicroLamports": PRIORITY_FEE_MICRO_LAMPORTS,
            "swapResponse": compute,
            "txVersion": "V0",
            "wallet": owner,
            "wrapSol": from_token.is_native,
            "unwrapSol": to_token.is_native,
        }
        driver = self.chain_service.resolve(self.chain.id)
        if not from_token.is_native:
            body["inputAccount"] = await driver.find_token_account(owner, from_token.address)
        if not to_token.is_native:
            output_account = await driver.find_token_account(owner, to_token.address)
            if output_account:
                body["outputAccount"] = output_account

        built = await self._request("POST", "/transaction/swap-base-in", json=body)
        if not built.get("success") or not built.get("data"):
            raise SwapExecutionError(f"Raydium could not build the swap: {built.get('msg')}", self.chain.id)

        leg = SwapLeg(
            chain_id=self.chain.id,
            venue=self.name,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount_in=amount_in,
            min_out=min_out,
        )
        description = (
            f"Swap {amount_in} {from_token.symbol} for at least {min_out} {to_token.symbol} on Raydium"
        )
        # Setup transactions (if any) precede the swap itself
        for item in built["data"]:
            tx = UnsignedTransaction(
                chain_id=self.chain.id,
                description=description,
                serialized=item["transaction"],
            )
            signed = await signer.sign(self.chain, tx)
            confirmation = await self.chain_service.send_transaction(self.chain.id, signed)
            leg.tx_hashes.append(confirmation.tx_hash)
            leg.native_fee += confirmation.fee or 0
            leg.confirmation = confirmation

        logger.info(
            f"[{self.chain.id}] Raydium swap {amount_in} {from_token.symbol} -> "
            f"{to_token.symbol} confirmed: {leg.tx_hash}"
        )
        return leg

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
