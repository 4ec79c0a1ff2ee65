"""Bottle Chain multi-chain wallet core.

Balances, token metadata, history, price feeds and swap routing across EVM
chains and Solana behind one interface.
"""

__version__ = "0.1.0"
