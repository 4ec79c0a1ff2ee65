"""Price feed endpoints."""

from fastapi import APIRouter, Depends

from bottlechain.api.contracts import PriceResponse, PricesResponse
from bottlechain.api.deps import get_core
from bottlechain.core import WalletCore
from bottlechain.errors import TokenNotFoundError

router = APIRouter(prefix="/prices", tags=["prices"])


@router.get("", response_model=PricesResponse)
async def get_all_prices(core: WalletCore = Depends(get_core)) -> PricesResponse:
    """Snapshot of every available price."""
    prices = core.get_all_prices()
    return PricesResponse(
        prices={
            symbol: PriceResponse.from_quote(quote, core.price_feed.get_state(symbol).value)
            for symbol, quote in prices.items()
        },
        count=len(prices),
    )


@router.get("/{symbol}", response_model=PriceResponse)
async def get_price(symbol: str, core: WalletCore = Depends(get_core)) -> PriceResponse:
    """Latest price for one symbol."""
    quote = core.price_feed.get_price(symbol)
    if quote is None:
        raise TokenNotFoundError(f"No price available for {symbol.upper()}")
    return PriceResponse.from_quote(quote, core.price_feed.get_state(symbol).value)
