"""Swap routing: venues, quotes and execution."""

from bottlechain.routing.base import ExchangeVenue, SwapLeg, SwapParams, SwapQuote
from bottlechain.routing.execution import SwapHandle, SwapResult, SwapStatus
from bottlechain.routing.factory import create_venue
from bottlechain.routing.raydium import RaydiumVenue
from bottlechain.routing.router import SwapRouter
from bottlechain.routing.simulated import SimulatedVenue
from bottlechain.routing.uniswap_v2 import UniswapV2Venue

__all__ = [
    "ExchangeVenue",
    "SwapLeg",
    "SwapParams",
    "SwapQuote",
    "SwapHandle",
    "SwapResult",
    "SwapStatus",
    "create_venue",
    "RaydiumVenue",
    "SwapRouter",
    "SimulatedVenue",
    "UniswapV2Venue",
]
