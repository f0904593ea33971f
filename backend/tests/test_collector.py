"""
Tests for the collection orchestrator, brand registry and push notifier.
"""

import asyncio
from datetime import timedelta

import pytest

from buzztrack.config import Settings
from buzztrack.core.spikes import SpikeDetector
from buzztrack.services.collector import MentionCollector, build_fetchers
from buzztrack.services.notifier import NullEventSink, RoomBroadcaster
from buzztrack.services.registry import BrandRegistry
from buzztrack.sources.google_news import GoogleNewsFetcher
from buzztrack.sources.news_api import NewsApiFetcher
from buzztrack.sources.twitter import TwitterFetcher
from buzztrack.utils import now_utc

from conftest import build_mention


class FakeFetcher:
    def __init__(self, source, records=None, error=None):
        self.source = source
        self.records = records or []
        self.error = error
        self.calls = []

    async def fetch(self, brand, limit=25):
        self.calls.append((brand, limit))
        if self.error:
            raise self.error
        return list(self.records)


class RecordingSink:
    def __init__(self):
        self.mentions = []
        self.spikes = []

    async def emit_mention(self, mention):
        self.mentions.append(mention)

    async def emit_spike(self, report):
        self.spikes.append(report)


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


class TestMentionCollector:
    """Fan-out, ingestion and event emission."""

    @pytest.fixture
    def sink(self):
        return RecordingSink()

    @pytest.fixture
    def detector(self, store):
        return SpikeDetector(store, threshold=2.5, min_mentions=5, default_timeframe="1h")

    @pytest.mark.asyncio
    async def test_failed_source_does_not_block_others(self, store, detector, sink):
        reddit = FakeFetcher("reddit", [build_mention(age=timedelta(0), now=now_utc()) for _ in range(2)])
        news = FakeFetcher("news", error=RuntimeError("news down"))
        collector = MentionCollector(store, detector, [reddit, news], sink)

        result = await collector.collect_brand("Acme")

        assert result.fetched == 2
        assert result.added == 2
        assert result.failed_sources == ["news"]
        assert len(store) == 2
        assert len(sink.mentions) == 2
        assert reddit.calls == [("Acme", 15)]
        assert news.calls == [("Acme", 10)]

    @pytest.mark.asyncio
    async def test_duplicates_and_malformed_records(self, store, detector, sink):
        mention = build_mention(url="https://example.com/same", now=now_utc())
        records = [
            mention,
            build_mention(url="https://example.com/same", now=now_utc()),
            {"source": "reddit", "content": "no brand"},
            {"brand": "Acme", "source": "reddit", "content": "raw record", "url": "https://example.com/raw"},
        ]
        collector = MentionCollector(store, detector, [FakeFetcher("reddit", records)], sink)

        result = await collector.collect_brand("Acme")

        assert result.fetched == 4
        assert result.added == 2
        assert result.duplicates == 1
        assert result.invalid == 1
        assert [m.content for m in sink.mentions] == [mention.content, "raw record"]

    @pytest.mark.asyncio
    async def test_spike_is_emitted(self, store, detector, sink):
        records = [build_mention(now=now_utc(), age=timedelta(minutes=i + 1)) for i in range(6)]
        collector = MentionCollector(store, detector, [FakeFetcher("reddit", records)], sink)

        result = await collector.collect_brand("Acme")

        assert result.spike is not None
        assert result.spike.detected is True
        assert len(sink.spikes) == 1

    @pytest.mark.asyncio
    async def test_sweep_emits_each_spike(self, store, detector, sink):
        for _ in range(6):
            store.add(build_mention(brand="Hot", now=now_utc()))
        store.add(build_mention(brand="Cold", now=now_utc()))
        collector = MentionCollector(store, detector, [], sink)

        spikes = await collector.sweep(["Hot", "Cold"])

        assert [s.brand for s in spikes] == ["Hot"]
        assert sink.spikes == spikes

    @pytest.mark.asyncio
    async def test_failing_sink_is_logged_not_raised(self, store, detector):
        class BrokenSink(NullEventSink):
            async def emit_mention(self, mention):
                raise RuntimeError("push failed")

        collector = MentionCollector(store, detector, [FakeFetcher("reddit", [build_mention(now=now_utc())])], BrokenSink())

        result = await collector.collect_brand("Acme")

        assert result.added == 1


class TestBuildFetchers:
    def test_google_news_without_key(self):
        fetchers = build_fetchers(Settings(NEWS_API_KEY="", TWITTER_ENABLED=False))

        assert [f.source for f in fetchers] == ["reddit", "news"]
        assert isinstance(fetchers[1], GoogleNewsFetcher)

    def test_news_api_and_twitter(self):
        fetchers = build_fetchers(Settings(NEWS_API_KEY="k", TWITTER_ENABLED=True, X_BEARER_TOKEN="t"))

        assert isinstance(fetchers[1], NewsApiFetcher)
        assert isinstance(fetchers[2], TwitterFetcher)
        assert fetchers[2].enabled is True


class TestBrandRegistry:
    """Per-brand polling lifecycle."""

    @pytest.mark.asyncio
    async def test_add_while_running_starts_polling(self):
        collected = []

        async def collect(brand):
            collected.append(brand)

        registry = BrandRegistry(collect, interval_seconds=3600, brands=["Nike"])
        assert registry.is_polling("Nike") is False

        registry.start_all()
        assert registry.add("Tesla") is True
        await asyncio.sleep(0)

        assert registry.is_polling("tesla")
        assert sorted(collected) == ["Nike", "Tesla"]
        await registry.stop_all()
        assert registry.is_polling("Nike") is False

    @pytest.mark.asyncio
    async def test_remove_stops_and_forgets(self):
        async def collect(brand):
            return None

        registry = BrandRegistry(collect, interval_seconds=3600, brands=["Nike"])
        registry.start_all()

        assert registry.remove("NIKE") is True
        assert registry.is_tracked("Nike") is False
        assert registry.is_polling("Nike") is False
        assert registry.remove("Nike") is False
        await registry.stop_all()

    def test_case_insensitive_identity(self):
        async def collect(brand):
            return None

        registry = BrandRegistry(collect, brands=["Nike", "nike ", "Apple"])

        assert registry.brands == ["Nike", "Apple"]
        assert registry.add("APPLE") is False
        assert registry.add("   ") is False
        assert registry.resolve("apple") == "Apple"

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_polling(self):
        attempts = []

        async def collect(brand):
            attempts.append(brand)
            raise RuntimeError("source exploded")

        registry = BrandRegistry(collect, interval_seconds=0, brands=["Nike"])
        registry.start_all()
        for _ in range(5):
            await asyncio.sleep(0)

        assert len(attempts) >= 2
        assert registry.is_polling("Nike")
        await registry.stop_all()


class TestRoomBroadcaster:
    """Brand rooms and event fan-out."""

    @pytest.mark.asyncio
    async def test_subscribe_and_receive_mentions(self):
        broadcaster = RoomBroadcaster()
        socket = FakeSocket()

        await broadcaster.handle_message(socket, {"action": "subscribe", "brand": "Acme"})
        await broadcaster.emit_mention(build_mention(brand="acme"))

        assert socket.sent[0] == {"event": "subscribed", "data": {"brand": "Acme"}}
        event = socket.sent[1]
        assert event["event"] == "new-mention"
        assert event["data"]["brand"] == "acme"
        assert "sentimentScore" in event["data"]
        assert broadcaster.subscriptions() == {"acme": 1}

    @pytest.mark.asyncio
    async def test_missing_brand_is_an_error(self):
        broadcaster = RoomBroadcaster()
        socket = FakeSocket()

        await broadcaster.handle_message(socket, {"action": "subscribe"})

        assert socket.sent == [{"event": "error", "data": {"message": "Brand name is required"}}]
        assert broadcaster.subscriptions() == {}

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        broadcaster = RoomBroadcaster()
        socket = FakeSocket()

        await broadcaster.handle_message(socket, {"action": "subscribe", "brand": "Acme"})
        await broadcaster.handle_message(socket, {"action": "unsubscribe", "brand": "Acme"})

        assert socket.sent[-1] == {"event": "unsubscribed", "data": {"brand": "Acme"}}
        assert broadcaster.has_subscribers("Acme") is False

    @pytest.mark.asyncio
    async def test_dead_peers_are_dropped(self, store):
        broadcaster = RoomBroadcaster()
        alive, dead = FakeSocket(), FakeSocket(fail=True)
        broadcaster.subscribe(alive, "Acme")
        broadcaster.subscribe(dead, "Acme")

        for _ in range(6):
            store.add(build_mention(now=now_utc()))
        report = SpikeDetector(store, default_timeframe="1h").detect_spikes("Acme")
        await broadcaster.emit_spike(report)

        assert alive.sent[0]["event"] == "spike-alert"
        assert alive.sent[0]["data"]["currentCount"] == 6
        assert broadcaster.subscriptions() == {"acme": 1}
