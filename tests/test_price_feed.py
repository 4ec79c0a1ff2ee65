"""Tests for the price feed aggregator."""

import asyncio
import random
from decimal import Decimal

import pytest

from bottlechain.chain_service import ChainService
from bottlechain.errors import PriceSourceError
from bottlechain.prices import (
    PriceFeedAggregator,
    PriceQuote,
    PriceSource,
    PriceState,
    SyntheticSource,
    TokenPriceConfig,
)
from tests.conftest import make_settings

NOW = 1_700_000_000.0


class FakeSource(PriceSource):
    """Price source returning fixed prices, failing for selected symbols."""

    def __init__(self, name: str = "fake", prices=None, failing=()):
        self._name = name
        self.prices = dict(prices or {})
        self.failing = set(failing)
        self.calls: list[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self, config, as_of):
        self.calls.append(config.symbol)
        if config.symbol in self.failing:
            raise PriceSourceError(config.symbol, self.name, "upstream unavailable")
        return PriceQuote(
            symbol=config.symbol,
            price=self.prices.get(config.symbol, Decimal("1")),
            change_24h=Decimal("0"),
            volume_24h=Decimal("0"),
            market_cap=Decimal("0"),
            last_updated=as_of,
            source=self.name,
        )

    async def close(self):
        self.closed = True


CONFIGS = [
    TokenPriceConfig(symbol="ETH", chain="ethereum", coingecko_id="ethereum"),
    TokenPriceConfig(symbol="SOL", chain="solana", coingecko_id="solana"),
]


def make_feed(source=None, configs=CONFIGS, settings=None) -> PriceFeedAggregator:
    source = source or FakeSource(prices={"ETH": Decimal("3000"), "SOL": Decimal("100")})
    return PriceFeedAggregator(
        configs=configs,
        settings=settings or make_settings(),
        sources={"coingecko": source, "synthetic": source},
        clock=lambda: NOW,
    )


class TestSyntheticPrices:
    """Tests for symbols without a real feed."""

    @pytest.mark.asyncio
    async def test_btl_is_synthetic(self):
        """BTL has no feed; its price stays within 0.5% of 45.67."""
        feed = PriceFeedAggregator(
            configs=[TokenPriceConfig(symbol="BTL", chain="bottle-chain")],
            settings=make_settings(),
            sources={"synthetic": SyntheticSource(rng=random.Random(7))},
            clock=lambda: NOW,
        )

        await feed.update_all()
        quote = feed.get_all_prices()["BTL"]

        assert quote.source == "synthetic"
        assert quote.last_updated == NOW
        assert Decimal("45.67") * Decimal("0.995") <= quote.price <= Decimal("45.67") * Decimal("1.005")

    @pytest.mark.asyncio
    async def test_unlisted_symbol_still_priced(self):
        """A symbol with no feed and no base price is priced around 1."""
        feed = PriceFeedAggregator(
            configs=[TokenPriceConfig(symbol="FOO", chain="bottle-chain")],
            settings=make_settings(),
            sources={"synthetic": SyntheticSource(rng=random.Random(7))},
            clock=lambda: NOW,
        )

        assert await feed.update_all() == ["FOO"]
        quote = feed.get_price("FOO")

        assert Decimal("0.995") <= quote.price <= Decimal("1.005")
        assert feed.get_state("FOO") == PriceState.FRESH

    @pytest.mark.asyncio
    async def test_one_timestamp_per_cycle(self):
        ticks = iter([NOW, NOW + 10])
        feed = make_feed()
        feed._clock = lambda: next(ticks)

        await feed.update_all()
        first = {q.last_updated for q in feed.get_all_prices().values()}
        await feed.update_all()
        second = {q.last_updated for q in feed.get_all_prices().values()}

        assert first == {NOW}
        assert second == {NOW + 10}


class TestSourceSelection:
    """Tests for oracle > aggregator > synthetic priority."""

    @pytest.fixture
    def feed(self, registry, settings):
        sources = {name: FakeSource(name) for name in ("chainlink", "pyth", "coingecko", "synthetic")}
        return PriceFeedAggregator(
            chain_service=ChainService(registry, settings),
            configs=[],
            settings=settings,
            sources=sources,
        )

    def test_chainlink_on_evm(self, feed):
        config = TokenPriceConfig("ETH", "ethereum", coingecko_id="ethereum", chainlink_feed="0xfeed")
        assert feed.select_source(config).name == "chainlink"

    def test_pyth_on_solana(self, feed):
        config = TokenPriceConfig("SOL", "solana", coingecko_id="solana", pyth_feed="Feed111")
        assert feed.select_source(config).name == "pyth"

    def test_oracle_on_wrong_family_falls_back(self, feed):
        """A Chainlink feed is not usable on Solana."""
        config = TokenPriceConfig("RAY", "solana", coingecko_id="raydium", chainlink_feed="0xfeed")
        assert feed.select_source(config).name == "coingecko"

    def test_aggregator_without_oracle(self, feed):
        config = TokenPriceConfig("LINK", "ethereum", coingecko_id="chainlink")
        assert feed.select_source(config).name == "coingecko"

    def test_synthetic_last(self, feed):
        assert feed.select_source(TokenPriceConfig("BTL", "bottle-chain")).name == "synthetic"

    def test_missing_source_skipped(self, settings):
        """Without a chain service there are no oracle sources."""
        feed = make_feed(settings=settings)
        config = TokenPriceConfig("ETH", "ethereum", coingecko_id="ethereum", chainlink_feed="0xfeed")
        assert feed.select_source(config).name == "fake"


class TestUpdates:
    """Tests for update cycles and failure isolation."""

    @pytest.mark.asyncio
    async def test_update_all(self):
        feed = make_feed()

        updated = await feed.update_all()

        assert sorted(updated) == ["ETH", "SOL"]
        assert feed.get_price("eth").price == Decimal("3000")
        assert feed.get_state("ETH") == PriceState.FRESH

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_value(self):
        """One failing symbol does not affect the others."""
        source = FakeSource(prices={"ETH": Decimal("3000"), "SOL": Decimal("100")})
        feed = make_feed(source)
        await feed.update_all()
        before = feed.get_price("ETH")

        source.failing.add("ETH")
        source.prices["SOL"] = Decimal("101")
        updated = await feed.update_all()

        assert updated == ["SOL"]
        assert feed.get_price("ETH") == before
        assert feed.get_state("ETH") == PriceState.STALE
        assert feed.get_price("SOL").price == Decimal("101")

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self):
        class BrokenSource(FakeSource):
            async def fetch(self, config, as_of):
                raise KeyError("usd")

        feed = make_feed(BrokenSource())

        assert await feed.update_all() == []
        assert feed.get_all_prices() == {}

    def test_initial_state_is_stale(self):
        feed = make_feed()
        assert feed.get_state("ETH") == PriceState.STALE
        assert feed.get_price("ETH") is None

    @pytest.mark.asyncio
    async def test_snapshots(self):
        """Snapshots without an update in between are equal, and are copies."""
        feed = make_feed()
        await feed.update_all()

        first = feed.get_all_prices()
        second = feed.get_all_prices()
        first.pop("ETH")

        assert "ETH" in second
        assert feed.get_all_prices() == second

    def test_token_lookups(self):
        feed = make_feed()
        assert feed.get_supported_tokens() == ["ETH", "SOL"]
        assert feed.get_token_config("sol").coingecko_id == "solana"
        assert [c.symbol for c in feed.get_tokens_for_chain("ethereum")] == ["ETH"]


class TestSubscriptions:
    """Tests for subscriber delivery and cancellation."""

    @pytest.mark.asyncio
    async def test_delivery(self):
        feed = make_feed()
        received = []
        feed.subscribe_to_updates(lambda symbol, quote: received.append((symbol, quote.price)))

        await feed.update_all()

        assert sorted(received) == [("ETH", Decimal("3000")), ("SOL", Decimal("100"))]

    @pytest.mark.asyncio
    async def test_cancelled_before_update(self):
        """A subscription cancelled before any update is never invoked."""
        feed = make_feed()
        received = []
        subscription = feed.subscribe_to_updates(lambda symbol, quote: received.append(symbol))

        subscription.cancel()
        subscription.cancel()
        await feed.update_all()

        assert received == []
        assert subscription.active is False
        assert feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_cancelled_during_delivery(self):
        """Cancelling another subscriber mid-cycle stops its delivery at once."""
        feed = make_feed(configs=CONFIGS[:1])
        late = []
        holder = {}

        def first(symbol, quote):
            holder["second"].cancel()

        feed.subscribe_to_updates(first)
        holder["second"] = feed.subscribe_to_updates(lambda symbol, quote: late.append(symbol))

        await feed.update_all()

        assert late == []

    @pytest.mark.asyncio
    async def test_raising_callback_does_not_stop_others(self):
        feed = make_feed(configs=CONFIGS[:1])
        received = []

        def broken(symbol, quote):
            raise RuntimeError("subscriber bug")

        feed.subscribe_to_updates(broken)
        feed.subscribe_to_updates(lambda symbol, quote: received.append(symbol))

        await feed.update_all()

        assert received == ["ETH"]
        assert feed.get_state("ETH") == PriceState.FRESH


class TestLifecycle:
    """Tests for start/stop."""

    @pytest.mark.asyncio
    async def test_start_fetches_eagerly(self):
        feed = make_feed(settings=make_settings(price_poll_interval=60))

        await feed.start()
        try:
            assert feed.is_running
            assert set(feed.get_all_prices()) == {"ETH", "SOL"}
        finally:
            await feed.stop()

    @pytest.mark.asyncio
    async def test_polls_periodically(self):
        source = FakeSource()
        feed = make_feed(source, configs=CONFIGS[:1], settings=make_settings(price_poll_interval=0.01))

        await feed.start()
        await asyncio.sleep(0.1)
        await feed.stop()

        assert len(source.calls) >= 3

    @pytest.mark.asyncio
    async def test_stop_destroys_subscriptions(self):
        source = FakeSource()
        feed = make_feed(source, settings=make_settings(price_poll_interval=60))
        subscription = feed.subscribe_to_updates(lambda symbol, quote: None)

        await feed.start()
        await feed.stop()

        assert subscription.active is False
        assert feed.subscriber_count == 0
        assert feed.is_running is False
        assert source.closed is True
