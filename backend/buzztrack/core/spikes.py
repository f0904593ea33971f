"""
Conversation spike detection.

Compares a brand's mention volume in the most recent window against the
previous window of equal length. Detection is stateless: every call is
recomputed from the store contents and the wall clock.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from buzztrack.core.store import MentionStore
from buzztrack.models import (
    HourlyBucket,
    Mention,
    MentionPreview,
    SentimentSummary,
    SpikeHistory,
    SpikeReport,
)
from buzztrack.utils import (
    content_preview,
    dominant_sentiment,
    empty_sentiment_counts,
    floor_to_hour,
    now_utc,
    parse_timeframe,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 2.5
DEFAULT_MIN_MENTIONS = 5
DEFAULT_TIMEFRAME = "7d"
TOP_MENTIONS_LIMIT = 5


def _brand_matches(mention: Mention, brand_key: str) -> bool:
    return (mention.brand or "").strip().lower() == brand_key


def summarize_sentiment(mentions: List[Mention]) -> SentimentSummary:
    """Dominant label, label counts and mean score of a mention set."""
    counts = empty_sentiment_counts()
    total_score = 0.0
    for mention in mentions:
        counts[mention.sentiment] = counts.get(mention.sentiment, 0) + 1
        total_score += mention.sentiment_score

    avg_score = total_score / len(mentions) if mentions else 0.0
    return SentimentSummary(
        dominant=dominant_sentiment(counts),
        breakdown=counts,
        avg_score=round(avg_score, 3),
    )


def preview_mention(mention: Mention) -> MentionPreview:
    return MentionPreview(
        id=mention.id,
        content=content_preview(mention.content),
        url=mention.url,
        source=mention.source,
        platform=mention.platform,
        sentiment=mention.sentiment,
        timestamp=mention.timestamp,
        engagement=mention.engagement,
    )


def top_mentions_by_engagement(mentions: List[Mention], limit: int = TOP_MENTIONS_LIMIT) -> List[MentionPreview]:
    """Highest likes+comments+shares first; ties keep the input order."""
    ranked = sorted(mentions, key=lambda m: m.total_engagement, reverse=True)
    return [preview_mention(m) for m in ranked[:limit]]


def source_breakdown(mentions: Iterable[Mention]) -> Dict[str, int]:
    return dict(Counter(m.source for m in mentions))


class SpikeDetector:
    """Detects volume spikes for brands held in a MentionStore."""

    def __init__(
        self,
        store: MentionStore,
        threshold: float = DEFAULT_THRESHOLD,
        min_mentions: int = DEFAULT_MIN_MENTIONS,
        default_timeframe: str = DEFAULT_TIMEFRAME,
    ):
        self.store = store
        self.threshold = threshold
        self.min_mentions = min_mentions
        self.default_timeframe = default_timeframe

    def detect_spikes(
        self,
        brand: str,
        timeframe: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SpikeReport:
        """
        Compare the recent window against the previous equal-length window.

        Args:
            brand: Brand name (case-insensitive)
            timeframe: Window length such as "1h" or "7d"; defaults to the
                detector's default timeframe, malformed strings mean 24h
            now: Reference instant, defaults to the current time

        Returns:
            SpikeReport; sentiment summary and top mentions are only filled
            when a spike is detected
        """
        timeframe = timeframe or self.default_timeframe
        window = parse_timeframe(timeframe)
        now = now or now_utc()
        recent_start = now - window
        previous_start = recent_start - window
        brand_key = (brand or "").strip().lower()

        recent: List[Mention] = []
        previous_count = 0
        # Insertion order, so engagement ties resolve by arrival
        for mention in self.store.snapshot():
            if not _brand_matches(mention, brand_key):
                continue
            if recent_start <= mention.timestamp <= now:
                recent.append(mention)
            elif previous_start <= mention.timestamp < recent_start:
                previous_count += 1

        recent_count = len(recent)
        # A silent previous window counts as one mention
        previous_count = max(previous_count, 1)
        spike_ratio = recent_count / previous_count
        detected = recent_count >= self.min_mentions and spike_ratio >= self.threshold

        report = SpikeReport(
            detected=detected,
            brand=brand,
            current_count=recent_count,
            previous_count=previous_count,
            spike_ratio=round(spike_ratio, 2),
            increase_percent=round((spike_ratio - 1) * 100, 1),
            timeframe=timeframe,
            timestamp=now,
            source_breakdown=source_breakdown(recent),
        )

        if detected:
            report.sentiment_summary = summarize_sentiment(recent)
            report.top_mentions = top_mentions_by_engagement(recent)

        return report

    def monitor_all_brands(self, brands: Iterable[str], now: Optional[datetime] = None) -> List[SpikeReport]:
        """
        Run spike detection for every given brand with the default timeframe.

        Args:
            brands: Brands to scan; the detector keeps no registry of its own
            now: Reference instant, defaults to the current time

        Returns:
            Reports for brands with a detected spike only
        """
        spikes: List[SpikeReport] = []
        for brand in brands:
            report = self.detect_spikes(brand, now=now)
            if report.detected:
                logger.warning(
                    "Spike detected for %s: %s%% increase (%d vs %d)",
                    brand, report.increase_percent, report.current_count, report.previous_count,
                )
                spikes.append(report)
        return spikes

    def get_spike_history(self, brand: str, days: int = 7, now: Optional[datetime] = None) -> SpikeHistory:
        """
        Hourly mention counts over ``days * 24`` buckets with spike flags.

        A bucket is flagged when its count exceeds the mean bucket count
        times the detector threshold. Meant for charting, not alerting.

        Args:
            brand: Brand name (case-insensitive)
            days: Number of days covered
            now: Reference instant, defaults to the current time

        Returns:
            SpikeHistory ordered oldest bucket first
        """
        now = now or now_utc()
        hours = max(int(days), 0) * 24
        period = f"{days} days"
        if hours == 0:
            return SpikeHistory(brand, period, [], 0.0, 0, 0)

        last_bucket = floor_to_hour(now)
        first_bucket = last_bucket - timedelta(hours=hours - 1)
        counts: Counter = Counter()
        brand_key = (brand or "").strip().lower()

        for mention in self.store.snapshot():
            if not _brand_matches(mention, brand_key):
                continue
            bucket = floor_to_hour(mention.timestamp)
            if first_bucket <= bucket <= last_bucket:
                counts[bucket] += 1

        total = sum(counts.values())
        average = total / hours
        timeline = []
        for offset in range(hours):
            bucket = first_bucket + timedelta(hours=offset)
            count = counts.get(bucket, 0)
            timeline.append(HourlyBucket(timestamp=bucket, count=count, is_spike=count > average * self.threshold))

        return SpikeHistory(
            brand=brand,
            period=period,
            timeline=timeline,
            avg_hourly_mentions=round(average, 2),
            total_mentions=total,
            spike_hours=sum(1 for bucket in timeline if bucket.is_spike),
        )


__all__ = [
    "DEFAULT_MIN_MENTIONS",
    "DEFAULT_THRESHOLD",
    "DEFAULT_TIMEFRAME",
    "SpikeDetector",
    "preview_mention",
    "source_breakdown",
    "summarize_sentiment",
    "top_mentions_by_engagement",
]
