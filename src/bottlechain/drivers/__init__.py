"""Chain drivers.

Variants:
- EvmDriver: Ethereum, BNB Chain and EVM-compatible custom chains
- SolanaDriver: Solana (SOL, SPL tokens)
"""

from bottlechain.drivers.base import ChainDriver, Confirmation, TokenInfo, TransactionRecord, TxStatus
from bottlechain.drivers.evm import EvmDriver
from bottlechain.drivers.factory import create_driver
from bottlechain.drivers.rpc import JsonRpcClient
from bottlechain.drivers.solana import SolanaDriver

__all__ = [
    "ChainDriver",
    "Confirmation",
    "TokenInfo",
    "TransactionRecord",
    "TxStatus",
    "EvmDriver",
    "SolanaDriver",
    "JsonRpcClient",
    "create_driver",
]
