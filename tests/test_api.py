"""Tests for the FastAPI endpoints."""

import random
from decimal import Decimal

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from bottlechain.api.app import create_app
from bottlechain.chain_service import ChainService
from bottlechain.core import WalletCore
from bottlechain.drivers.factory import create_driver
from bottlechain.prices import PriceFeedAggregator, SyntheticSource, TokenPriceConfig
from tests.conftest import EVM_ADDRESS, RpcStub, make_settings


def ethereum_node(request: httpx.Request) -> httpx.Response:
    """Ethereum node that answers balances, or fails for one address."""
    payload = request.read()
    if b"0x" + b"ee" * 20 in payload:
        return httpx.Response(503, text="upstream unavailable")
    return RpcStub({"eth_getBalance": hex(2 * 10**18), "eth_call": "0x" + f"{1_500_000:064x}"})(request)


@pytest.fixture
def core(registry):
    settings = make_settings(dry_run=True)
    node = httpx.AsyncClient(transport=httpx.MockTransport(ethereum_node))
    chain_service = ChainService(
        registry, settings, driver_factory=lambda chain: create_driver(chain, settings, http_client=node)
    )
    price_feed = PriceFeedAggregator(
        chain_service,
        configs=[TokenPriceConfig("BTL", "bottle-chain"), TokenPriceConfig("SOL", "solana")],
        settings=settings,
        sources={"synthetic": SyntheticSource(rng=random.Random(11))},
    )
    return WalletCore(settings, chain_service=chain_service, price_feed=price_feed)


@pytest.fixture
async def client(core):
    """Create async test client."""
    app = create_app(core)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await core.stop()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test basic health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "bottlechain"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        """Test detailed health check."""
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["config"]["dry_run"] is True
        assert data["config"]["bridge"]["fee"] == "0.1%"
        assert data["prices"]["tracked"] == 2


class TestChainEndpoints:
    """Tests for chain and token listings."""

    @pytest.mark.asyncio
    async def test_list_chains(self, client):
        response = await client.get("/api/v1/chains")

        assert response.status_code == 200
        chains = response.json()
        assert [c["id"] for c in chains] == ["bottle-chain", "ethereum", "binance", "solana"]
        assert chains[0]["family"] == "custom"
        assert chains[0]["reachable"] is None

    @pytest.mark.asyncio
    async def test_list_tokens(self, client):
        response = await client.get("/api/v1/chains/solana/tokens")

        assert response.status_code == 200
        symbols = [t["symbol"] for t in response.json()]
        assert symbols == ["SOL", "RAY", "SRM", "USDC"]

    @pytest.mark.asyncio
    async def test_unknown_chain(self, client):
        response = await client.get("/api/v1/chains/avalanche/tokens")

        assert response.status_code == 404
        assert response.json()["error"] == "no_provider"
        assert set(response.json()) == {"error", "detail"}


class TestBalanceEndpoints:
    """Tests for balance lookups."""

    @pytest.mark.asyncio
    async def test_native_balance(self, client):
        response = await client.get(f"/api/v1/balances/ethereum/{EVM_ADDRESS}")

        assert response.status_code == 200
        data = response.json()
        assert data["token"] == "ETH"
        assert data["raw_amount"] == str(2 * 10**18)
        assert Decimal(data["amount"]) == Decimal("2")

    @pytest.mark.asyncio
    async def test_token_balance(self, client):
        response = await client.get(f"/api/v1/balances/ethereum/{EVM_ADDRESS}", params={"token": "usdc"})

        assert response.status_code == 200
        assert Decimal(response.json()["amount"]) == Decimal("1.5")

    @pytest.mark.asyncio
    async def test_invalid_address(self, client):
        response = await client.get("/api/v1/balances/ethereum/not-an-address")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_address"

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        response = await client.get(f"/api/v1/balances/ethereum/{EVM_ADDRESS}", params={"token": "DOGE"})

        assert response.status_code == 404
        assert response.json()["error"] == "token_not_found"

    @pytest.mark.asyncio
    async def test_node_failure(self, client):
        response = await client.get("/api/v1/balances/ethereum/0x" + "ee" * 20)

        assert response.status_code == 502
        assert response.json()["error"] == "rpc_error"


class TestPriceEndpoints:
    """Tests for price reads."""

    @pytest.mark.asyncio
    async def test_prices(self, client, core):
        await core.price_feed.update_all()

        response = await client.get("/api/v1/prices")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["prices"]["BTL"]["source"] == "synthetic"
        assert data["prices"]["BTL"]["state"] == "fresh"

    @pytest.mark.asyncio
    async def test_single_price(self, client, core):
        await core.price_feed.update_all()

        response = await client.get("/api/v1/prices/sol")

        assert response.status_code == 200
        assert response.json()["symbol"] == "SOL"

    @pytest.mark.asyncio
    async def test_missing_price(self, client):
        response = await client.get("/api/v1/prices/BTL")

        assert response.status_code == 404


class TestSwapEndpoints:
    """Tests for swap quotes."""

    @pytest.mark.asyncio
    async def test_cross_chain_quote(self, client):
        response = await client.post("/api/v1/swaps/quote", json={
            "from_token": "ETH",
            "to_token": "BTL",
            "from_chain": "ethereum",
            "to_chain": "bottle-chain",
            "amount": "10",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["route"] == ["ETH", "USDC", "USDC", "BTL"]
        assert data["fee"] == "0.1% + 0.3% + 0.3%"
        assert data["estimated_time_seconds"] == 900
        assert data["cross_chain"] is True
        assert data["simulated"] is True
        assert len(data["legs"]) == 2
        assert Decimal(data["legs"][0]["estimated_output"]) == Decimal("29910")

    @pytest.mark.asyncio
    async def test_same_chain_quote(self, client):
        response = await client.post("/api/v1/swaps/quote", json={
            "from_token": "SOL",
            "to_token": "USDC",
            "from_chain": "solana",
            "to_chain": "solana",
            "amount": "2",
            "slippage_pct": "0.5",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["venue"] == "Raydium"
        assert data["legs"] == []

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client):
        response = await client.post("/api/v1/swaps/quote", json={
            "from_token": "ETH",
            "to_token": "USDC",
            "from_chain": "ethereum",
            "to_chain": "ethereum",
            "amount": "-5",
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_token(self, client):
        response = await client.post("/api/v1/swaps/quote", json={
            "from_token": "ETH",
            "to_token": "DOGE",
            "from_chain": "ethereum",
            "to_chain": "ethereum",
            "amount": "1",
        })

        assert response.status_code == 404
        assert response.json()["error"] == "token_not_found"
