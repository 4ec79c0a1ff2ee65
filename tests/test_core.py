"""Tests for the WalletCore composition root."""

import random
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from bottlechain.bridge import DryRunBridge
from bottlechain.chain_service import ChainService
from bottlechain.core import WalletCore
from bottlechain.prices import PriceFeedAggregator, SyntheticSource, TokenPriceConfig
from bottlechain.routing import SwapParams, SwapStatus
from tests.conftest import EVM_ADDRESS, RecordingSigner, make_settings


def healthy_driver(chain):
    driver = MagicMock()
    driver.ping = AsyncMock(return_value=True)
    driver.get_balance = AsyncMock(return_value=Decimal("3.5"))
    driver.close = AsyncMock()
    return driver


@pytest.fixture
def core(registry):
    settings = make_settings(dry_run=True, price_poll_interval=60, network_check_interval=60)
    chain_service = ChainService(registry, settings, driver_factory=healthy_driver)
    price_feed = PriceFeedAggregator(
        chain_service,
        configs=[TokenPriceConfig("BTL", "bottle-chain"), TokenPriceConfig("ETH", "ethereum")],
        settings=settings,
        sources={"synthetic": SyntheticSource(rng=random.Random(3))},
    )
    return WalletCore(settings, chain_service=chain_service, price_feed=price_feed, signer=RecordingSigner())


class TestWalletCore:
    """Tests for WalletCore wiring and entry points."""

    @pytest.mark.asyncio
    async def test_lifecycle(self, core):
        received = []

        async with core:
            subscription = core.subscribe_to_updates(lambda symbol, quote: received.append(symbol))
            await core.price_feed.update_all()

            assert set(core.get_all_prices()) == {"BTL", "ETH"}
            assert core.network_status()["ethereum"].reachable is True
            assert core.price_feed.is_running

        assert sorted(received) == ["BTL", "ETH"]
        assert subscription.active is False
        assert core.price_feed.is_running is False
        assert core.network_monitor.is_running is False

    def test_dry_run_gets_simulated_bridge(self, core):
        assert isinstance(core.router.bridge, DryRunBridge)
        assert core.router.bridge.fee_percent == Decimal("0.1")

    @pytest.mark.asyncio
    async def test_get_balance(self, core):
        assert await core.get_balance("ethereum", EVM_ADDRESS) == Decimal("3.5")

    @pytest.mark.asyncio
    async def test_quote_and_execute(self, core):
        request = SwapParams(
            from_token="ETH", to_token="BTL", from_chain="ethereum", to_chain="bottle-chain", amount="1"
        )

        quote = await core.get_swap_quote(request)
        handle = await core.execute_swap(request)
        result = await handle.wait()

        assert len(quote.route) == 4
        assert handle.status == SwapStatus.COMPLETED
        assert result.amount_out > 0
        await core.stop()
