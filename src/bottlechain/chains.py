"""Chain and token registry.

Supports 4 chains out of the box:
- Bottle Chain (custom, EVM JSON-RPC compatible)
- Ethereum (Uniswap), BNB Chain (PancakeSwap)
- Solana (Raydium)

The registry is read-only input to the core. Reloading means building a new
registry and a new core.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from bottlechain.errors import NoProviderError, TokenNotFoundError

NATIVE = "native"


class ChainFamily(str, Enum):
    """Ledger architecture of a chain."""

    EVM = "evm"
    SOLANA = "solana"
    CUSTOM = "custom"  # EVM JSON-RPC compatible, no shared venue


# Native currency decimals per family when the registry does not list them
FAMILY_NATIVE_DECIMALS = {
    ChainFamily.EVM: 18,
    ChainFamily.SOLANA: 9,
    ChainFamily.CUSTOM: 18,
}


@dataclass(frozen=True)
class ChainDescriptor:
    """Immutable configuration for one chain."""

    id: str
    name: str
    family: ChainFamily
    rpc_url: str
    native_symbol: str
    explorer_url: str

    explorer_api_url: Optional[str] = None  # Etherscan-compatible history API
    evm_chain_id: Optional[int] = None  # EVM chains only
    native_decimals: Optional[int] = None

    def __post_init__(self):
        if self.native_decimals is None:
            object.__setattr__(self, "native_decimals", FAMILY_NATIVE_DECIMALS[self.family])

    @property
    def is_evm_compatible(self) -> bool:
        return self.family in (ChainFamily.EVM, ChainFamily.CUSTOM)


@dataclass(frozen=True)
class TokenDescriptor:
    """Immutable description of a token on one chain."""

    symbol: str
    chain_id: str
    address: str  # contract / mint address, or "native"
    decimals: int
    name: str = ""

    @property
    def is_native(self) -> bool:
        return self.address == NATIVE


@dataclass
class ChainRegistry:
    """Ordered chain list plus chain id -> ordered token list."""

    chains: tuple[ChainDescriptor, ...]
    tokens: dict[str, tuple[TokenDescriptor, ...]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        chains: Iterable[ChainDescriptor],
        tokens: Optional[dict[str, Iterable[TokenDescriptor]]] = None,
    ) -> "ChainRegistry":
        """Build a registry from plain lists."""
        tokens = tokens or {}
        return cls(
            chains=tuple(chains),
            tokens={chain_id: tuple(items) for chain_id, items in tokens.items()},
        )

    def get_chain(self, chain_id: str) -> ChainDescriptor:
        """Get chain descriptor by id.

        Raises:
            NoProviderError: if the chain is not configured
        """
        for chain in self.chains:
            if chain.id == chain_id:
                return chain
        raise NoProviderError(f"No provider for chain {chain_id}", chain_id)

    def has_chain(self, chain_id: str) -> bool:
        return any(chain.id == chain_id for chain in self.chains)

    def tokens_for(self, chain_id: str) -> tuple[TokenDescriptor, ...]:
        """Get all configured tokens on a chain."""
        return self.tokens.get(chain_id, ())

    def native_token(self, chain_id: str) -> TokenDescriptor:
        """Get the native currency descriptor for a chain."""
        chain = self.get_chain(chain_id)
        for token in self.tokens_for(chain_id):
            if token.is_native:
                return token
        return TokenDescriptor(
            symbol=chain.native_symbol,
            chain_id=chain_id,
            address=NATIVE,
            decimals=chain.native_decimals,
            name=chain.name,
        )

    def find_token(self, chain_id: str, symbol: str) -> TokenDescriptor:
        """Resolve a token symbol on a chain.

        Raises:
            NoProviderError: if the chain is not configured
            TokenNotFoundError: if the symbol is not listed on the chain
        """
        chain = self.get_chain(chain_id)
        wanted = symbol.upper()
        for token in self.tokens_for(chain_id):
            if token.symbol.upper() == wanted:
                return token
        if wanted == chain.native_symbol.upper():
            return self.native_token(chain_id)
        raise TokenNotFoundError(f"Token {symbol} not found on {chain_id}", chain_id)

    def find_token_by_address(self, chain_id: str, address: str) -> Optional[TokenDescriptor]:
        """Find a listed token by contract / mint address."""
        for token in self.tokens_for(chain_id):
            if token.address.lower() == address.lower():
                return token
        return None


# ======================
# Default Networks
# ======================

NETWORKS: list[ChainDescriptor] = [
    ChainDescriptor(
        id="bottle-chain",
        name="Bottle Chain",
        family=ChainFamily.CUSTOM,
        rpc_url="https://mainnet.bottlechain.network",
        native_symbol="BTL",
        explorer_url="https://explorer.bottlechain.network",
        evm_chain_id=1,
    ),
    ChainDescriptor(
        id="ethereum",
        name="Ethereum",
        family=ChainFamily.EVM,
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        explorer_url="https://etherscan.io",
        explorer_api_url="https://api.etherscan.io/api",
        evm_chain_id=1,
    ),
    ChainDescriptor(
        id="binance",
        name="BNB Chain",
        family=ChainFamily.EVM,
        rpc_url="https://bsc-dataseed.binance.org",
        native_symbol="BNB",
        explorer_url="https://bscscan.com",
        explorer_api_url="https://api.bscscan.com/api",
        evm_chain_id=56,
    ),
    ChainDescriptor(
        id="solana",
        name="Solana",
        family=ChainFamily.SOLANA,
        rpc_url="https://api.mainnet-beta.solana.com",
        native_symbol="SOL",
        explorer_url="https://explorer.solana.com",
    ),
]


def _tokens(chain_id: str, rows: list[tuple[str, str, str, int]]) -> tuple[TokenDescriptor, ...]:
    return tuple(
        TokenDescriptor(symbol=symbol, chain_id=chain_id, address=address, decimals=decimals, name=name)
        for symbol, name, address, decimals in rows
    )


SUPPORTED_TOKENS: dict[str, tuple[TokenDescriptor, ...]] = {
    "bottle-chain": _tokens("bottle-chain", [
        ("BTL", "Bottle Chain Token", NATIVE, 18),
        ("USDC", "USD Coin (Bottle Chain)", "0x0000000000000000000000000000000000000b7c", 6),
    ]),
    "ethereum": _tokens("ethereum", [
        ("ETH", "Ethereum", NATIVE, 18),
        ("USDT", "Tether USD", "0xdac17f958d2ee523a2206206994597c13d831ec7", 6),
        ("USDC", "USD Coin", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", 6),
        ("WBTC", "Wrapped Bitcoin", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599", 8),
        ("LINK", "Chainlink", "0x514910771af9ca656af840dff83e8264ecf986ca", 18),
    ]),
    "binance": _tokens("binance", [
        ("BNB", "Binance Coin", NATIVE, 18),
        ("CAKE", "PancakeSwap Token", "0x0e09fabb73bd3ade0a17ecc321fd13a19e81ce82", 18),
        ("BUSD", "Binance USD", "0xe9e7cea3dedca5984780bafc599bd69add087d56", 18),
        ("USDC", "USD Coin (BEP20)", "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d", 18),
    ]),
    "solana": _tokens("solana", [
        ("SOL", "Solana", NATIVE, 9),
        ("RAY", "Raydium", "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", 6),
        ("SRM", "Serum", "SRMuApVNdxXokk5GT7XD5cUUgXMBCoAz2LHeuAoKWRt", 6),
        ("USDC", "USD Coin (Solana)", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6),
    ]),
}


def default_registry(settings=None) -> ChainRegistry:
    """Build the default registry, applying RPC URL overrides from settings."""
    from dataclasses import replace

    chains = []
    for chain in NETWORKS:
        override = settings.get_rpc_override(chain.id) if settings else None
        chains.append(replace(chain, rpc_url=override) if override else chain)
    return ChainRegistry.build(chains, SUPPORTED_TOKENS)
