"""API request and response contracts."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from bottlechain.chain_service import Balance
from bottlechain.chains import ChainDescriptor, TokenDescriptor
from bottlechain.prices import PriceQuote
from bottlechain.routing import SwapQuote


class ChainResponse(BaseModel):
    """A configured chain."""

    id: str = Field(..., description="Chain id")
    name: str = Field(..., description="Display name")
    family: str = Field(..., description="evm, solana or custom")
    native_symbol: str = Field(..., description="Native currency symbol")
    explorer_url: str = Field(..., description="Block explorer URL")
    reachable: Optional[bool] = Field(None, description="Latest network check result")

    @classmethod
    def from_chain(cls, chain: ChainDescriptor, reachable: Optional[bool] = None) -> "ChainResponse":
        return cls(
            id=chain.id,
            name=chain.name,
            family=chain.family.value,
            native_symbol=chain.native_symbol,
            explorer_url=chain.explorer_url,
            reachable=reachable,
        )


class TokenResponse(BaseModel):
    """A token listed on a chain."""

    symbol: str
    name: str
    chain_id: str
    address: str = Field(..., description="Contract/mint address or 'native'")
    decimals: int

    @classmethod
    def from_token(cls, token: TokenDescriptor) -> "TokenResponse":
        return cls(
            symbol=token.symbol,
            name=token.name,
            chain_id=token.chain_id,
            address=token.address,
            decimals=token.decimals,
        )


class BalanceResponse(BaseModel):
    """On-chain balance of one token."""

    chain_id: str
    address: str
    token: str = Field(..., description="Token symbol")
    raw_amount: str = Field(..., description="Amount in the token's smallest unit")
    amount: Decimal = Field(..., description="Amount in human units")

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponse":
        return cls(
            chain_id=balance.chain_id,
            address=balance.address,
            token=balance.token_symbol,
            raw_amount=str(balance.raw_amount),
            amount=balance.human_amount,
        )


class PriceResponse(BaseModel):
    """Latest market data for a symbol."""

    symbol: str
    price: Decimal
    change_24h: Decimal
    volume_24h: Decimal
    market_cap: Decimal
    last_updated: float
    source: str
    state: Optional[str] = Field(None, description="stale, updating or fresh")

    @classmethod
    def from_quote(cls, quote: PriceQuote, state: Optional[str] = None) -> "PriceResponse":
        return cls(
            symbol=quote.symbol,
            price=quote.price,
            change_24h=quote.change_24h,
            volume_24h=quote.volume_24h,
            market_cap=quote.market_cap,
            last_updated=quote.last_updated,
            source=quote.source,
            state=state,
        )


class PricesResponse(BaseModel):
    """Snapshot of the whole price table."""

    prices: dict[str, PriceResponse]
    count: int


class QuoteLegResponse(BaseModel):
    """One same-chain leg of a quote."""

    chain_id: str
    venue: str
    route: list[str]
    estimated_output: Decimal
    price_impact_pct: Decimal
    fee: str
    estimated_time_seconds: int


class QuoteResponse(BaseModel):
    """Swap quote (slippage not applied)."""

    from_chain: str
    to_chain: str
    amount_in: Decimal
    estimated_output: Decimal
    price_impact_pct: Decimal
    fee: str = Field(..., description="Fee description, e.g. '0.1% + 0.3% + 0.3%'")
    route: list[str]
    estimated_time_seconds: int
    venue: str
    cross_chain: bool
    simulated: bool
    legs: list[QuoteLegResponse] = Field(default_factory=list)

    @classmethod
    def from_quote(cls, quote: SwapQuote) -> "QuoteResponse":
        return cls(
            from_chain=quote.from_chain,
            to_chain=quote.to_chain,
            amount_in=quote.amount_in,
            estimated_output=quote.estimated_output,
            price_impact_pct=quote.price_impact_pct,
            fee=quote.fee_description,
            route=list(quote.route),
            estimated_time_seconds=quote.estimated_time_seconds,
            venue=quote.venue,
            cross_chain=quote.is_cross_chain,
            simulated=quote.simulated,
            legs=[
                QuoteLegResponse(
                    chain_id=leg.from_chain,
                    venue=leg.venue,
                    route=list(leg.route),
                    estimated_output=leg.estimated_output,
                    price_impact_pct=leg.price_impact_pct,
                    fee=leg.fee_description,
                    estimated_time_seconds=leg.estimated_time_seconds,
                )
                for leg in quote.legs
            ],
        )


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Error kind")
    detail: str
