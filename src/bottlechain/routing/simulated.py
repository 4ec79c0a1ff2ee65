"""Simulated venue for dry-run mode and chains without an on-chain AMM integration.

Quotes are deterministic: reference USD prices, a flat venue fee and a fixed
price impact. Swaps never touch the chain.
"""

import hashlib
import logging
import time
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers.base import Confirmation, TxStatus
from bottlechain.errors import NoProviderError, TransactionRejectedError
from bottlechain.routing.base import ExchangeVenue, SwapLeg
from bottlechain.signing import TransactionSigner

logger = logging.getLogger(__name__)


# Reference prices in USD. For simulation only, never for real trading.
SIMULATED_PRICES: dict[str, Decimal] = {
    # ========== Native Currencies ==========
    "BTL": Decimal("45.67"),
    "ETH": Decimal("3000.00"),
    "BNB": Decimal("300.00"),
    "SOL": Decimal("100.00"),

    # ========== Stablecoins ==========
    "USDT": Decimal("1.00"),
    "USDC": Decimal("1.00"),
    "BUSD": Decimal("1.00"),

    # ========== Ecosystem Tokens ==========
    "CAKE": Decimal("2.50"),
    "RAY": Decimal("1.20"),
    "SRM": Decimal("0.80"),
    "LINK": Decimal("28.00"),
    "WBTC": Decimal("100000.00"),
}


class SimulatedVenue(ExchangeVenue):
    """Deterministic stand-in for a chain's exchange venue."""

    simulated = True

    def __init__(
        self,
        chain: ChainDescriptor,
        name: str = "dry_run",
        fee_percent: Decimal = Decimal("0.3"),
        estimated_time_seconds: int = 30,
        price_impact_pct: Decimal = Decimal("0.5"),
        prices: Optional[dict[str, Decimal]] = None,
    ):
        super().__init__(chain)
        self._name = name
        self.fee_percent = fee_percent
        self._estimated_time = estimated_time_seconds
        self.price_impact_pct = price_impact_pct
        self._prices = dict(SIMULATED_PRICES if prices is None else prices)

    @property
    def name(self) -> str:
        return self._name

    @property
    def fee_description(self) -> str:
        return f"{self.fee_percent.normalize():f}%"

    @property
    def estimated_time_seconds(self) -> int:
        return self._estimated_time

    def set_price(self, symbol: str, price: Decimal) -> None:
        """Set the simulated price for a symbol."""
        self._prices[symbol.upper()] = price

    def get_price(self, symbol: str) -> Optional[Decimal]:
        return self._prices.get(symbol.upper())

    def _hop(self, amount: Decimal, token_in: TokenDescriptor, token_out: TokenDescriptor) -> Decimal:
        price_in = self.get_price(token_in.symbol)
        price_out = self.get_price(token_out.symbol)
        if price_in is None or price_out is None:
            raise NoProviderError(
                f"{self.name} has no market for {token_in.symbol}/{token_out.symbol}", self.chain.id
            )
        out = amount * price_in / price_out * (100 - self.fee_percent) / 100
        return out.quantize(Decimal(1).scaleb(-token_out.decimals), rounding=ROUND_DOWN)

    async def get_amounts_out(self, amount_in: Decimal, path: list[TokenDescriptor]) -> list[Decimal]:
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            amounts.append(self._hop(amounts[-1], token_in, token_out))
        return amounts

    async def get_price_impact(self, amount_in: Decimal, path: list[TokenDescriptor]) -> Decimal:
        return self.price_impact_pct

    async def swap(
        self,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount_in: Decimal,
        min_out: Decimal,
        slippage_pct: Decimal,
        signer: TransactionSigner,
    ) -> SwapLeg:
        amounts = await self.get_amounts_out(amount_in, [from_token, to_token])
        if amounts[-1] < min_out:
            raise TransactionRejectedError(
                f"Output {amounts[-1]} {to_token.symbol} is below the minimum {min_out}",
                chain_id=self.chain.id,
            )

        tx_data = f"{self.chain.id}{from_token.symbol}{to_token.symbol}{amount_in}{time.time()}"
        tx_hash = f"0x{hashlib.sha256(tx_data.encode()).hexdigest()}"
        logger.info(
            f"[dry-run] {self.name} swap {amount_in} {from_token.symbol} -> "
            f"{amounts[-1]} {to_token.symbol} on {self.chain.id}"
        )
        return SwapLeg(
            chain_id=self.chain.id,
            venue=self.name,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            amount_in=amount_in,
            min_out=min_out,
            tx_hashes=[tx_hash],
            confirmation=Confirmation(
                chain_id=self.chain.id,
                tx_hash=tx_hash,
                status=TxStatus.CONFIRMED,
                simulated=True,
            ),
            amount_out=amounts[-1],
            simulated=True,
        )
