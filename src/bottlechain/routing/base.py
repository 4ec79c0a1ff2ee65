"""Swap parameters, quotes and the exchange venue interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.drivers.base import Confirmation
from bottlechain.signing import TransactionSigner

logger = logging.getLogger(__name__)


class SwapParams(BaseModel):
    """A swap request in human units."""

    from_token: str = Field(..., description="Source token symbol")
    to_token: str = Field(..., description="Destination token symbol")
    from_chain: str = Field(..., description="Source chain id")
    to_chain: str = Field(..., description="Destination chain id")
    amount: str = Field(..., description="Amount of from_token, positive decimal string")
    slippage_pct: Decimal = Field(
        default=Decimal("1"),
        ge=0,
        le=100,
        description="Slippage tolerance in percent",
    )

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        try:
            parsed = Decimal(value.strip())
        except (InvalidOperation, AttributeError):
            raise ValueError(f"amount must be a decimal string, got {value!r}") from None
        if not parsed.is_finite() or parsed <= 0:
            raise ValueError("amount must be positive")
        return value.strip()

    @property
    def amount_decimal(self) -> Decimal:
        return Decimal(self.amount)

    @property
    def is_cross_chain(self) -> bool:
        return self.from_chain != self.to_chain


@dataclass(frozen=True)
class SwapQuote:
    """Quote for a same-chain swap or a composed cross-chain swap.

    Bridged quotes carry their two same-chain legs in `legs`.
    """

    estimated_output: Decimal
    price_impact_pct: Decimal
    fee_description: str
    route: tuple[str, ...]
    estimated_time_seconds: int
    venue: str
    from_chain: str
    to_chain: str
    amount_in: Decimal
    legs: tuple["SwapQuote", ...] = ()
    simulated: bool = False

    @property
    def is_cross_chain(self) -> bool:
        return self.from_chain != self.to_chain


@dataclass
class SwapLeg:
    """One executed same-chain swap."""

    chain_id: str
    venue: str
    from_token: str
    to_token: str
    amount_in: Decimal
    min_out: Decimal
    tx_hashes: list[str] = field(default_factory=list)
    confirmation: Optional[Confirmation] = None
    amount_out: Optional[Decimal] = None  # known upfront only for simulated venues
    native_fee: int = 0  # raw native units spent on gas across the leg's transactions
    simulated: bool = False

    @property
    def tx_hash(self) -> Optional[str]:
        return self.tx_hashes[-1] if self.tx_hashes else None


class ExchangeVenue(ABC):
    """A chain's native exchange venue.

    Exactly one venue serves each chain.
    """

    simulated = False

    def __init__(self, chain: ChainDescriptor):
        self.chain = chain

    @property
    @abstractmethod
    def name(self) -> str:
        """Venue name identifier."""
        pass

    @property
    @abstractmethod
    def fee_description(self) -> str:
        """Venue fee as shown in quotes (e.g. '0.3%')."""
        pass

    @property
    @abstractmethod
    def estimated_time_seconds(self) -> int:
        pass

    @abstractmethod
    async def get_amounts_out(self, amount_in: Decimal, path: list[TokenDescriptor]) -> list[Decimal]:
        """Output amount after each hop of `path`, starting with `amount_in`."""
        pass

    @abstractmethod
    async def get_price_impact(self, amount_in: Decimal, path: list[TokenDescriptor]) -> Decimal:
        """Price impact of the trade in percent."""
        pass

    async def get_quote(
        self, from_token: TokenDescriptor, to_token: TokenDescriptor, amount_in: Decimal
    ) -> SwapQuote:
        """Quote a direct swap. No slippage is applied."""
        path = [from_token, to_token]
        amounts = await self.get_amounts_out(amount_in, path)
        impact = await self.get_price_impact(amount_in, path)
        return self._make_quote(from_token, to_token, amount_in, amounts[-1], impact)

    def _make_quote(
        self,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount_in: Decimal,
        amount_out: Decimal,
        impact: Decimal,
    ) -> SwapQuote:
        return SwapQuote(
            estimated_output=amount_out,
            price_impact_pct=impact,
            fee_description=self.fee_description,
            route=(from_token.symbol, to_token.symbol),
            estimated_time_seconds=self.estimated_time_seconds,
            venue=self.name,
            from_chain=self.chain.id,
            to_chain=self.chain.id,
            amount_in=amount_in,
            simulated=self.simulated,
        )

    @abstractmethod
    async def swap(
        self,
        from_token: TokenDescriptor,
        to_token: TokenDescriptor,
        amount_in: Decimal,
        min_out: Decimal,
        slippage_pct: Decimal,
        signer: TransactionSigner,
    ) -> SwapLeg:
        """Execute the swap and wait for its confirmation.

        Args:
            from_token: Input token
            to_token: Output token
            amount_in: Input amount in human units
            min_out: Minimum acceptable output in human units
            slippage_pct: Tolerance used to derive min_out, for venues that need it
            signer: Wallet signer

        Raises:
            TransactionRejectedError: the chain refused or reverted the swap
            ConfirmationTimeoutError: no confirmation within the bounded wait
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
