"""Health check endpoints."""

from fastapi import APIRouter, Depends

from bottlechain import __version__
from bottlechain.api.deps import get_core
from bottlechain.core import WalletCore

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "bottlechain"}


@router.get("/health/detailed")
async def detailed_health(core: WalletCore = Depends(get_core)):
    """Detailed health check with configuration and chain status."""
    return {
        "status": "healthy",
        "service": "bottlechain",
        "version": __version__,
        "config": core.settings.get_safe_dict(),
        "chains": {
            chain_id: {
                "reachable": status.reachable,
                "latency_ms": status.latency_ms,
                "error": status.error,
            }
            for chain_id, status in core.network_status().items()
        },
        "prices": {
            "tracked": len(core.price_feed.get_supported_tokens()),
            "available": len(core.get_all_prices()),
        },
    }
