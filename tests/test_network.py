"""Tests for the network monitor."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from bottlechain.chain_service import ChainService
from bottlechain.errors import RpcError
from bottlechain.network import NetworkMonitor
from tests.conftest import make_settings


async def slow_ping():
    await asyncio.sleep(5)
    return True


def monitor_with(registry, settings, pings: dict) -> NetworkMonitor:
    def factory(chain):
        driver = MagicMock()
        driver.ping = pings[chain.id]
        driver.close = AsyncMock()
        return driver

    return NetworkMonitor(ChainService(registry, settings, driver_factory=factory), settings)


class TestNetworkMonitor:
    """Tests for NetworkMonitor."""

    @pytest.mark.asyncio
    async def test_check_all(self, registry):
        """Each chain gets its own result; a slow chain does not hold up the rest."""
        settings = make_settings(network_check_timeout=0.2)
        monitor = monitor_with(registry, settings, {
            "ethereum": AsyncMock(return_value=True),
            "binance": AsyncMock(side_effect=RpcError("HTTP 503")),
            "solana": slow_ping,
            "bottle-chain": AsyncMock(return_value=False),
        })

        started = time.monotonic()
        status = await monitor.check_all()
        elapsed = time.monotonic() - started

        assert elapsed < 2
        assert status["ethereum"].reachable is True
        assert status["ethereum"].latency_ms is not None
        assert status["binance"].reachable is False
        assert "503" in status["binance"].error
        assert status["solana"].reachable is False
        assert "no response" in status["solana"].error
        assert status["bottle-chain"].reachable is False
        assert status["bottle-chain"].error == "node reports unhealthy"

    @pytest.mark.asyncio
    async def test_is_reachable(self, registry, settings):
        monitor = monitor_with(registry, settings, {
            "ethereum": AsyncMock(return_value=True),
            "binance": AsyncMock(return_value=True),
            "solana": AsyncMock(side_effect=RpcError("refused")),
            "bottle-chain": AsyncMock(return_value=True),
        })

        assert monitor.is_reachable("ethereum") is False

        await monitor.check_all()

        assert monitor.is_reachable("ethereum") is True
        assert monitor.is_reachable("solana") is False
        assert monitor.is_reachable("avalanche") is False

    @pytest.mark.asyncio
    async def test_status_is_snapshot(self, registry, settings):
        monitor = monitor_with(registry, settings, {chain.id: AsyncMock(return_value=True) for chain in registry.chains})
        await monitor.check_all()

        snapshot = monitor.get_status()
        snapshot.clear()

        assert len(monitor.get_status()) == 4

    @pytest.mark.asyncio
    async def test_start_and_stop(self, registry):
        settings = make_settings(network_check_interval=0.01)
        pings = {chain.id: AsyncMock(return_value=True) for chain in registry.chains}
        monitor = monitor_with(registry, settings, pings)

        await monitor.start()
        assert monitor.is_running
        await asyncio.sleep(0.05)
        await monitor.stop()

        assert monitor.is_running is False
        assert pings["ethereum"].await_count >= 2
