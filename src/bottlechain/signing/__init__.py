"""Signer interface. Key custody lives outside the core."""

from bottlechain.signing.base import TransactionSigner, UnsignedTransaction

__all__ = ["TransactionSigner", "UnsignedTransaction"]
