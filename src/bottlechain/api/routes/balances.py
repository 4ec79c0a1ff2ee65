"""Balance endpoints.

Balances are read from chain state on every request; nothing is cached.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from bottlechain.api.contracts import BalanceResponse
from bottlechain.api.deps import get_core
from bottlechain.core import WalletCore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("/{chain_id}/{address}", response_model=BalanceResponse)
async def get_balance(
    chain_id: str,
    address: str,
    token: Optional[str] = Query(None, description="Token symbol (native currency if omitted)"),
    core: WalletCore = Depends(get_core),
) -> BalanceResponse:
    """Get one token balance for an address."""
    descriptor = core.registry.find_token(chain_id, token) if token else None
    logger.info(f"Fetching {token or 'native'} balance on {chain_id} for {address[:10]}...")
    balance = await core.chain_service.get_balance_record(chain_id, address, descriptor)
    return BalanceResponse.from_balance(balance)
