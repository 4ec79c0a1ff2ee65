"""Request dependencies."""

from fastapi import Request

from bottlechain.core import WalletCore


def get_core(request: Request) -> WalletCore:
    """The WalletCore instance owned by the application."""
    return request.app.state.core
