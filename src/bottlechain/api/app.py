"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bottlechain import __version__
from bottlechain.api.contracts import ErrorResponse
from bottlechain.config import get_settings
from bottlechain.core import WalletCore
from bottlechain.errors import (
    BottleChainError,
    InvalidAddressError,
    NoProviderError,
    RpcError,
    TokenNotFoundError,
)

logger = logging.getLogger(__name__)

# Checked in order; anything else is a 500
ERROR_STATUS_CODES: list[tuple[type[BottleChainError], int]] = [
    (NoProviderError, 404),
    (TokenNotFoundError, 404),
    (InvalidAddressError, 400),
    (RpcError, 502),
]


def status_code_for(error: BottleChainError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await app.state.core.start()
    yield
    # Shutdown
    await app.state.core.stop()


async def bottlechain_error_handler(request: Request, exc: BottleChainError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    body = ErrorResponse(error=exc.kind, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app(core: Optional[WalletCore] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        core: Wallet core to serve; built from settings when omitted
    """
    settings = get_settings()

    app = FastAPI(
        title="Bottle Chain Wallet API",
        description="Multi-chain balances, prices and swap quotes",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.core = core or WalletCore(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BottleChainError, bottlechain_error_handler)

    # Register routes
    from bottlechain.api.routes import balances, chains, health, prices, swaps

    app.include_router(health.router, tags=["Health"])
    app.include_router(chains.router, prefix="/api/v1", tags=["Chains"])
    app.include_router(balances.router, prefix="/api/v1", tags=["Balances"])
    app.include_router(prices.router, prefix="/api/v1", tags=["Prices"])
    app.include_router(swaps.router, prefix="/api/v1", tags=["Swaps"])

    return app
