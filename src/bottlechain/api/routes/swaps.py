"""Swap quote endpoint.

Execution needs an in-process signer and is not exposed over HTTP.
"""

import logging

from fastapi import APIRouter, Depends

from bottlechain.api.contracts import QuoteResponse
from bottlechain.api.deps import get_core
from bottlechain.core import WalletCore
from bottlechain.routing import SwapParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/swaps", tags=["swaps"])


@router.post("/quote", response_model=QuoteResponse)
async def get_swap_quote(params: SwapParams, core: WalletCore = Depends(get_core)) -> QuoteResponse:
    """Quote a same-chain or cross-chain swap."""
    logger.info(
        f"Quote request: {params.amount} {params.from_token}@{params.from_chain} -> "
        f"{params.to_token}@{params.to_chain}"
    )
    quote = await core.get_swap_quote(params)
    return QuoteResponse.from_quote(quote)
