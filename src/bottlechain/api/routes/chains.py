"""Chain and token listing endpoints."""

from fastapi import APIRouter, Depends

from bottlechain.api.contracts import ChainResponse, TokenResponse
from bottlechain.api.deps import get_core
from bottlechain.core import WalletCore

router = APIRouter(prefix="/chains", tags=["chains"])


@router.get("", response_model=list[ChainResponse])
async def list_chains(core: WalletCore = Depends(get_core)) -> list[ChainResponse]:
    """List configured chains with their latest reachability."""
    status = core.network_status()
    return [
        ChainResponse.from_chain(chain, status[chain.id].reachable if chain.id in status else None)
        for chain in core.registry.chains
    ]


@router.get("/{chain_id}/tokens", response_model=list[TokenResponse])
async def list_tokens(chain_id: str, core: WalletCore = Depends(get_core)) -> list[TokenResponse]:
    """List tokens configured on a chain."""
    core.registry.get_chain(chain_id)
    return [TokenResponse.from_token(token) for token in core.registry.tokens_for(chain_id)]
