"""Error taxonomy shared by drivers, price sources and the swap router.

Every error carries the chain id it relates to (when there is one) so callers
can tell a same-chain failure from a cross-chain one without parsing messages.
"""

from decimal import Decimal
from typing import Optional


class BottleChainError(Exception):
    """Base class for all core errors."""

    kind = "error"

    def __init__(self, message: str, chain_id: Optional[str] = None):
        self.chain_id = chain_id
        super().__init__(message)


class NoProviderError(BottleChainError):
    """Requested chain id has no configured driver, venue or data source."""

    kind = "no_provider"


class InvalidAddressError(BottleChainError):
    """Address is malformed for the chain family."""

    kind = "invalid_address"

    def __init__(self, address: str, chain_id: Optional[str] = None):
        self.address = address
        super().__init__(f"Invalid address for {chain_id or 'chain'}: {address!r}", chain_id)


class TokenNotFoundError(BottleChainError):
    """Token address or symbol does not resolve to a token on the chain."""

    kind = "token_not_found"


class RpcError(BottleChainError):
    """Transport or protocol failure while talking to a chain endpoint."""

    kind = "rpc_error"

    def __init__(self, message: str, chain_id: Optional[str] = None, method: Optional[str] = None):
        self.method = method
        super().__init__(message, chain_id)


class JsonRpcError(RpcError):
    """The endpoint answered with a JSON-RPC error object."""

    def __init__(
        self,
        code: int,
        message: str,
        chain_id: Optional[str] = None,
        method: Optional[str] = None,
        data: object = None,
    ):
        self.code = code
        self.data = data
        super().__init__(f"{method or 'rpc'} failed ({code}): {message}", chain_id, method)


class PriceSourceError(BottleChainError):
    """A single symbol's price update failed."""

    kind = "price_source_error"

    def __init__(self, symbol: str, source: str, reason: str):
        self.symbol = symbol
        self.source = source
        super().__init__(f"{source} price for {symbol} unavailable: {reason}")


class TransactionRejectedError(BottleChainError):
    """Transaction failed simulation/validation or was reverted."""

    kind = "transaction_rejected"

    def __init__(
        self,
        message: str,
        chain_id: Optional[str] = None,
        tx_hash: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        self.tx_hash = tx_hash
        self.stage = stage
        super().__init__(message, chain_id)


class ConfirmationTimeoutError(BottleChainError, TimeoutError):
    """No confirmation was observed within the bounded wait."""

    kind = "timeout"

    def __init__(
        self,
        message: str,
        chain_id: Optional[str] = None,
        tx_hash: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        self.tx_hash = tx_hash
        self.stage = stage
        super().__init__(message, chain_id)


class SwapExecutionError(BottleChainError):
    """Swap failed before any leg committed on-chain."""

    kind = "swap_failed"

    def __init__(self, message: str, chain_id: Optional[str] = None, stage: str = "source"):
        self.stage = stage
        super().__init__(message, chain_id)


class PartialSwapError(SwapExecutionError):
    """Cross-chain swap committed its source leg but did not complete.

    Funds are left in the intermediary asset and need recovery.
    """

    kind = "partial_completion"

    def __init__(
        self,
        message: str,
        stage: str,
        source_chain: str,
        stranded_chain: str,
        stranded_token: str,
        stranded_amount: Decimal,
        committed_tx_hashes: Optional[list[str]] = None,
    ):
        self.source_chain = source_chain
        self.stranded_chain = stranded_chain
        self.stranded_token = stranded_token
        self.stranded_amount = stranded_amount
        self.committed_tx_hashes = committed_tx_hashes or []
        super().__init__(message, chain_id=stranded_chain, stage=stage)
