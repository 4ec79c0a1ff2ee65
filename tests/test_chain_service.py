"""Tests for the chain abstraction layer."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from bottlechain.chain_service import ChainService
from bottlechain.drivers.base import TokenInfo, TransactionRecord, TxStatus
from bottlechain.drivers.evm import EvmDriver
from bottlechain.drivers.solana import SolanaDriver
from bottlechain.errors import NoProviderError, RpcError, TokenNotFoundError
from tests.conftest import EVM_ADDRESS, SOLANA_ADDRESS


def mock_driver(**methods) -> MagicMock:
    driver = MagicMock()
    driver.close = AsyncMock()
    for name, value in methods.items():
        setattr(driver, name, value)
    return driver


class TestResolve:
    """Tests for lazy driver construction."""

    def test_driver_built_once(self, registry, settings):
        built = []

        def factory(chain):
            built.append(chain.id)
            return mock_driver()

        service = ChainService(registry, settings, driver_factory=factory)

        first = service.resolve("ethereum")
        second = service.resolve("ethereum")

        assert first is second
        assert built == ["ethereum"]
        assert service.active_chains == ["ethereum"]

    def test_no_driver_before_use(self, registry, settings):
        factory = MagicMock()
        service = ChainService(registry, settings, driver_factory=factory)

        assert service.active_chains == []
        factory.assert_not_called()

    def test_unknown_chain(self, registry, settings):
        service = ChainService(registry, settings, driver_factory=lambda chain: mock_driver())

        with pytest.raises(NoProviderError):
            service.resolve("avalanche")

    def test_default_factory_picks_family(self, registry, settings):
        service = ChainService(registry, settings)

        assert isinstance(service.resolve("ethereum"), EvmDriver)
        assert isinstance(service.resolve("bottle-chain"), EvmDriver)
        assert isinstance(service.resolve("solana"), SolanaDriver)


class TestForwarding:
    """Tests for operation routing and error tagging."""

    @pytest.mark.asyncio
    async def test_get_balance(self, registry, settings):
        driver = mock_driver(get_balance=AsyncMock(return_value=Decimal("1.5")))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        balance = await service.get_balance("solana", SOLANA_ADDRESS)

        assert balance == Decimal("1.5")
        driver.get_balance.assert_awaited_once_with(SOLANA_ADDRESS, None)

    @pytest.mark.asyncio
    async def test_balance_record(self, registry, settings):
        driver = mock_driver(get_raw_balance=AsyncMock(return_value=2_000_000))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)
        usdc = registry.find_token("ethereum", "USDC")

        record = await service.get_balance_record("ethereum", EVM_ADDRESS, usdc)

        assert record.raw_amount == 2_000_000
        assert record.human_amount == Decimal("2")
        assert record.token_symbol == "USDC"

    @pytest.mark.asyncio
    async def test_errors_carry_chain_id(self, registry, settings):
        """Driver errors without a chain id get the routed chain id."""
        driver = mock_driver(get_balance=AsyncMock(side_effect=RpcError("boom")))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        with pytest.raises(RpcError) as exc_info:
            await service.get_balance("binance", EVM_ADDRESS)
        assert exc_info.value.chain_id == "binance"

    @pytest.mark.asyncio
    async def test_transport_errors_become_rpc_errors(self, registry, settings):
        driver = mock_driver(ping=AsyncMock(side_effect=httpx.ReadTimeout("timed out")))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        with pytest.raises(RpcError) as exc_info:
            await service.ping("ethereum")
        assert exc_info.value.chain_id == "ethereum"

    @pytest.mark.asyncio
    async def test_token_info_filled_from_registry(self, registry, settings):
        """SPL mints carry no symbol; listed tokens get it from the registry."""
        mint = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        info = TokenInfo(address=mint, name=None, symbol=None, decimals=6, total_supply=10**12)
        driver = mock_driver(get_token_info=AsyncMock(return_value=info))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        result = await service.get_token_info("solana", mint)

        assert result.symbol == "USDC"
        assert result.decimals == 6

    @pytest.mark.asyncio
    async def test_token_info_not_found_propagates(self, registry, settings):
        driver = mock_driver(get_token_info=AsyncMock(side_effect=TokenNotFoundError("no contract")))
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        with pytest.raises(TokenNotFoundError) as exc_info:
            await service.get_token_info("ethereum", "0x" + "cd" * 20)
        assert exc_info.value.chain_id == "ethereum"

    @pytest.mark.asyncio
    async def test_transaction_history(self, registry, settings):
        async def history(address):
            for n in range(3):
                yield TransactionRecord(
                    hash=f"0x{n}",
                    from_address=address,
                    to_address=None,
                    amount=Decimal(n),
                    timestamp=None,
                    status=TxStatus.CONFIRMED,
                )

        driver = mock_driver(get_transaction_history=history)
        service = ChainService(registry, settings, driver_factory=lambda chain: driver)

        hashes = [r.hash async for r in service.get_transaction_history("ethereum", EVM_ADDRESS)]

        assert hashes == ["0x0", "0x1", "0x2"]

    @pytest.mark.asyncio
    async def test_close_releases_drivers(self, registry, settings):
        drivers = {}

        def factory(chain):
            drivers[chain.id] = mock_driver()
            return drivers[chain.id]

        service = ChainService(registry, settings, driver_factory=factory)
        service.resolve("ethereum")
        service.resolve("solana")

        await service.close()

        drivers["ethereum"].close.assert_awaited_once()
        drivers["solana"].close.assert_awaited_once()
        assert service.active_chains == []
