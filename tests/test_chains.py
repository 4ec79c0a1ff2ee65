"""Tests for the chain and token registry."""

import pytest

from bottlechain.chains import NATIVE, ChainDescriptor, ChainFamily, ChainRegistry, default_registry
from bottlechain.errors import NoProviderError, TokenNotFoundError
from tests.conftest import make_settings


class TestChainRegistry:
    """Tests for ChainRegistry lookups."""

    def test_default_chains_in_order(self, registry):
        """Registry keeps configuration order."""
        assert [chain.id for chain in registry.chains] == ["bottle-chain", "ethereum", "binance", "solana"]

    def test_get_chain(self, registry):
        chain = registry.get_chain("solana")
        assert chain.family == ChainFamily.SOLANA
        assert chain.native_decimals == 9

    def test_unknown_chain(self, registry):
        with pytest.raises(NoProviderError) as exc_info:
            registry.get_chain("avalanche")
        assert exc_info.value.chain_id == "avalanche"

    def test_custom_chain_is_evm_compatible(self, registry):
        chain = registry.get_chain("bottle-chain")
        assert chain.family == ChainFamily.CUSTOM
        assert chain.is_evm_compatible is True
        assert chain.native_decimals == 18

    def test_find_token_case_insensitive(self, registry):
        token = registry.find_token("ethereum", "usdc")
        assert token.symbol == "USDC"
        assert token.decimals == 6

    def test_same_symbol_differs_per_chain(self, registry):
        """USDC has 18 decimals on BNB Chain."""
        assert registry.find_token("binance", "USDC").decimals == 18
        assert registry.find_token("ethereum", "USDC") != registry.find_token("binance", "USDC")

    def test_find_token_unknown_symbol(self, registry):
        with pytest.raises(TokenNotFoundError):
            registry.find_token("solana", "CAKE")

    def test_find_token_unknown_chain(self, registry):
        with pytest.raises(NoProviderError):
            registry.find_token("avalanche", "AVAX")

    def test_native_token(self, registry):
        token = registry.native_token("bottle-chain")
        assert token.symbol == "BTL"
        assert token.is_native is True

    def test_native_token_synthesized_when_unlisted(self):
        """Chains without a token list still resolve their native currency."""
        chain = ChainDescriptor(
            id="devnet",
            name="Devnet",
            family=ChainFamily.EVM,
            rpc_url="http://localhost:8545",
            native_symbol="DEV",
            explorer_url="",
        )
        registry = ChainRegistry.build([chain])

        token = registry.find_token("devnet", "dev")
        assert token.address == NATIVE
        assert token.decimals == 18

    def test_find_token_by_address(self, registry):
        token = registry.find_token_by_address("ethereum", "0xA0B86991C6218B36C1D19D4A2E9EB0CE3606EB48")
        assert token is not None
        assert token.symbol == "USDC"
        assert registry.find_token_by_address("ethereum", "0x" + "00" * 20) is None


class TestDefaultRegistry:
    """Tests for settings overrides."""

    def test_rpc_override(self):
        settings = make_settings(sol_rpc_url="http://localhost:8899")
        registry = default_registry(settings)

        assert registry.get_chain("solana").rpc_url == "http://localhost:8899"
        assert registry.get_chain("ethereum").rpc_url == "https://eth.llamarpc.com"
