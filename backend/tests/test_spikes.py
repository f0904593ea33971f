"""
Unit tests for spike detection.
"""

from datetime import timedelta, timezone

import pytest

from buzztrack.core.spikes import SpikeDetector
from buzztrack.models import Mention


def fill(store, make_mention, now, recent, previous, window=timedelta(hours=1), brand="Acme"):
    """Insert ``recent`` mentions in the last window and ``previous`` in the one before."""
    for i in range(recent):
        store.add(make_mention(brand=brand, now=now, age=window * (i + 1) / (recent + 1)))
    for i in range(previous):
        store.add(make_mention(brand=brand, now=now, age=window + window * (i + 1) / (previous + 1)))


class TestDetectSpikes:
    """Window comparison and thresholds."""

    @pytest.fixture
    def detector(self, store):
        return SpikeDetector(store, threshold=2.5, min_mentions=5)

    def test_ratio_below_threshold(self, detector, store, make_mention, now):
        fill(store, make_mention, now, recent=24, previous=10)

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.current_count == 24
        assert report.previous_count == 10
        assert report.spike_ratio == 2.4
        assert report.detected is False
        assert report.sentiment_summary is None
        assert report.top_mentions is None

    def test_ratio_at_threshold(self, detector, store, make_mention, now):
        fill(store, make_mention, now, recent=25, previous=10)

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.spike_ratio == 2.5
        assert report.increase_percent == 150.0
        assert report.detected is True

    def test_min_mentions_floor(self, detector, store, make_mention, now):
        fill(store, make_mention, now, recent=4, previous=1)

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.spike_ratio == 4.0
        assert report.detected is False

    def test_silent_previous_window_counts_as_one(self, detector, store, make_mention, now):
        fill(store, make_mention, now, recent=7, previous=0)

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.previous_count == 1
        assert report.spike_ratio == 7.0
        assert report.detected is True

    def test_no_mentions(self, detector, now):
        report = detector.detect_spikes("Nobody", "24h", now=now)

        assert report.current_count == 0
        assert report.previous_count == 1
        assert report.spike_ratio == 0.0
        assert report.increase_percent == -100.0
        assert report.source_breakdown == {}
        assert report.detected is False

    def test_source_breakdown_always_present(self, detector, store, make_mention, now):
        store.add(make_mention(now=now, source="reddit"))
        store.add(make_mention(now=now, source="news"))
        store.add(make_mention(now=now, source="news"))

        report = detector.detect_spikes("acme", "1h", now=now)

        assert report.detected is False
        assert report.source_breakdown == {"reddit": 1, "news": 2}

    def test_detected_spike_details(self, detector, store, make_mention, now):
        engagement = [5, 50, 1, 50, 20, 0]
        for i, likes in enumerate(engagement):
            store.add(make_mention(
                now=now,
                age=timedelta(minutes=i + 1),
                likes=likes,
                sentiment="negative" if i % 2 else "positive",
                content="x" * 150,
            ))

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.detected is True
        assert report.sentiment_summary.breakdown == {"positive": 3, "neutral": 0, "negative": 3}
        assert report.sentiment_summary.dominant == "positive"
        top = report.top_mentions
        assert len(top) == 5
        assert [m.engagement.likes for m in top] == [50, 50, 20, 5, 1]
        # Ties keep store order
        assert top[0].timestamp > top[1].timestamp
        assert top[0].content == "x" * 100 + "..."

    def test_malformed_timeframe_uses_24h(self, detector, store, make_mention, now):
        store.add(make_mention(now=now, age=timedelta(hours=20)))
        store.add(make_mention(now=now, age=timedelta(hours=30)))

        report = detector.detect_spikes("Acme", "soon", now=now)

        assert report.current_count == 1
        assert report.previous_count == 1
        assert report.timeframe == "soon"

    def test_end_to_end_previous_window_keeps_ratio_low(self, store, make_mention, now):
        detector = SpikeDetector(store, threshold=2.5, min_mentions=2)
        for minutes in (5, 20, 40):
            store.add(make_mention(now=now, age=timedelta(minutes=minutes)))
        store.add(make_mention(now=now, age=timedelta(minutes=70)))
        store.add(make_mention(now=now, age=timedelta(minutes=100)))
        store.add(make_mention(now=now, age=timedelta(hours=10)))

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.current_count == 3
        assert report.previous_count == 2
        assert report.spike_ratio == 1.5
        assert report.detected is False

    def test_end_to_end_old_mention_outside_both_windows(self, store, make_mention, now):
        detector = SpikeDetector(store, threshold=2.5, min_mentions=2)
        for minutes in (5, 20, 40):
            store.add(make_mention(now=now, age=timedelta(minutes=minutes)))
        store.add(make_mention(now=now, age=timedelta(hours=10)))

        report = detector.detect_spikes("Acme", "1h", now=now)

        assert report.previous_count == 1
        assert report.spike_ratio == 3.0
        assert report.detected is True

    def test_default_timeframe(self, store, make_mention, now):
        detector = SpikeDetector(store, default_timeframe="7d")
        store.add(make_mention(now=now, age=timedelta(days=6)))
        store.add(make_mention(now=now, age=timedelta(days=8)))

        report = detector.detect_spikes("Acme", now=now)

        assert report.timeframe == "7d"
        assert report.current_count == 1
        assert report.previous_count == 1


class TestMonitorAndHistory:
    """Multi-brand sweep and hourly history."""

    def test_monitor_returns_only_detected(self, store, make_mention, now):
        detector = SpikeDetector(store, threshold=2.5, min_mentions=5, default_timeframe="1h")
        for _ in range(6):
            store.add(make_mention(brand="Hot", age=timedelta(minutes=10)))
        store.add(make_mention(brand="Cold", age=timedelta(minutes=10)))

        spikes = detector.monitor_all_brands(["Hot", "Cold", "Missing"], now=now)

        assert [s.brand for s in spikes] == ["Hot"]

    def test_history_buckets(self, store, make_mention, now):
        detector = SpikeDetector(store, threshold=2.5)
        # now is 12:30, so 12:00 is the last bucket
        for _ in range(10):
            store.add(make_mention(now=now, age=timedelta(minutes=10)))
        store.add(make_mention(now=now, age=timedelta(hours=5)))
        store.add(make_mention(now=now, age=timedelta(days=3)))

        history = detector.get_spike_history("Acme", days=1, now=now)

        assert len(history.timeline) == 24
        assert history.timeline[-1].timestamp == now.replace(minute=0)
        assert history.timeline[-1].count == 10
        assert history.total_mentions == 11
        assert history.avg_hourly_mentions == round(11 / 24, 2)
        assert history.timeline[-1].is_spike is True
        assert history.spike_hours == 1
        assert history.period == "1 days"

    def test_history_without_days(self, store):
        history = SpikeDetector(store).get_spike_history("Acme", days=0)

        assert history.timeline == []
        assert history.total_mentions == 0

    def test_history_counts_offset_timestamps(self, store, now):
        ist = timezone(timedelta(hours=5, minutes=30))
        local = (now - timedelta(minutes=10)).astimezone(ist)
        store.add(Mention(brand="Acme", source="news", content="local clock", timestamp=local))

        history = SpikeDetector(store).get_spike_history("Acme", days=1, now=now)

        assert history.total_mentions == 1
        assert sum(bucket.count for bucket in history.timeline) == 1
        assert history.timeline[-1].count == 1

    def test_history_starts_at_first_full_bucket(self, store, make_mention, now):
        # now is 12:30: the first bucket is 13:00 the previous day
        store.add(make_mention(now=now, age=timedelta(hours=23, minutes=45)))
        store.add(make_mention(now=now, age=timedelta(hours=23, minutes=15)))

        history = SpikeDetector(store).get_spike_history("Acme", days=1, now=now)

        assert history.timeline[0].timestamp == now.replace(minute=0) - timedelta(hours=23)
        assert history.timeline[0].count == 1
        assert history.total_mentions == 1
