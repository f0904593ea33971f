"""
File: buzztrack/models.py
Internal data structures used during collection/analysis.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from buzztrack.utils import SENTIMENT_LABELS, now_utc, parse_instant


JsonDict = Dict[str, Any]

KNOWN_SOURCES = ("reddit", "news", "twitter")
UNKNOWN_AUTHOR = "Unknown"


def generate_mention_id() -> str:
    """Opaque 32-character hex token."""
    return secrets.token_hex(16)


def _non_negative_int(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


@dataclass
class Engagement:
    """Per-platform interaction counts; not comparable across sources."""

    likes: int = 0
    comments: int = 0
    shares: int = 0

    @property
    def total(self) -> int:
        return self.likes + self.comments + self.shares

    @classmethod
    def from_dict(cls, data: Optional[JsonDict]) -> "Engagement":
        data = data or {}
        return cls(
            likes=_non_negative_int(data.get("likes")),
            comments=_non_negative_int(data.get("comments")),
            shares=_non_negative_int(data.get("shares")),
        )


@dataclass
class Mention:
    """One observed occurrence of a brand name in a source record.

    Mentions are never mutated after they are inserted into the store.
    """

    brand: str
    source: str  # "reddit" | "news" | "twitter"
    content: str
    platform: str = ""  # e.g. "r/technology" or a publisher name
    url: Optional[str] = None
    author: str = UNKNOWN_AUTHOR
    sentiment: str = "neutral"
    sentiment_score: float = 0.0
    timestamp: datetime = field(default_factory=now_utc)
    engagement: Engagement = field(default_factory=Engagement)
    metadata: JsonDict = field(default_factory=dict)
    id: str = field(default_factory=generate_mention_id)

    def __post_init__(self):
        # Stored instants are always aware UTC; naive values are read as UTC
        self.timestamp = parse_instant(self.timestamp) or now_utc()

    @property
    def total_engagement(self) -> int:
        return self.engagement.total

    @classmethod
    def from_dict(cls, data: JsonDict) -> "Mention":
        """Build a Mention from a raw record, filling defaults for missing fields.

        Raises:
            ValueError: If brand or source is missing
        """
        brand = str(data.get("brand") or "").strip()
        source = str(data.get("source") or "").strip()
        if not brand or not source:
            raise ValueError("Mention requires both brand and source")

        sentiment = data.get("sentiment")
        if sentiment not in SENTIMENT_LABELS:
            sentiment = "neutral"

        try:
            score = float(data.get("sentimentScore", data.get("sentiment_score")) or 0.0)
        except (TypeError, ValueError):
            score = 0.0

        # Missing or garbled source dates fall back to ingestion time
        timestamp = parse_instant(data.get("timestamp")) or now_utc()

        return cls(
            id=data.get("id") or generate_mention_id(),
            brand=brand,
            source=source,
            platform=data.get("platform") or "",
            content=data.get("content") or "",
            url=data.get("url") or None,
            author=data.get("author") or UNKNOWN_AUTHOR,
            sentiment=sentiment,
            sentiment_score=score,
            timestamp=timestamp,
            engagement=Engagement.from_dict(data.get("engagement")),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class SentimentResult:
    label: str
    score: float


@dataclass
class MentionStats:
    total: int
    timeframe: str
    sentiment: Dict[str, int]
    sources: Dict[str, int]
    avg_engagement: int
    avg_sentiment: float


@dataclass
class SentimentSummary:
    dominant: str
    breakdown: Dict[str, int]
    avg_score: float


@dataclass
class MentionPreview:
    id: str
    content: str
    url: Optional[str]
    source: str
    platform: str
    sentiment: str
    timestamp: datetime
    engagement: Engagement


@dataclass
class SpikeReport:
    detected: bool
    brand: str
    current_count: int
    previous_count: int
    spike_ratio: float
    increase_percent: float
    timeframe: str
    timestamp: datetime
    source_breakdown: Dict[str, int]
    sentiment_summary: Optional[SentimentSummary] = None
    top_mentions: Optional[List[MentionPreview]] = None


@dataclass
class HourlyBucket:
    timestamp: datetime
    count: int
    is_spike: bool = False


@dataclass
class SpikeHistory:
    brand: str
    period: str
    timeline: List[HourlyBucket]
    avg_hourly_mentions: float
    total_mentions: int
    spike_hours: int


@dataclass
class Topic:
    keyword: str
    score: float
    count: int
    sentiment: str
    sentiment_breakdown: Dict[str, int]
    percentage_of_set: float
    category: str
    avg_engagement: int
    importance: float


@dataclass
class TrendingTopic(Topic):
    recent_count: int = 0
    old_count: int = 0
    trend_ratio: float = 0.0
    momentum: float = 0.0
    is_trending: bool = False
    velocity: str = "moderate"


@dataclass
class EmergingTopic:
    keyword: str
    count: int
    previous_count: int
    is_new: bool
    growth: Optional[float]
    category: str
    sentiment: str


@dataclass
class TopicCluster:
    topic: str
    category: str
    count: int
    sentiment: str
    sources: Dict[str, int]
    platforms: Dict[str, int]
    samples: List[MentionPreview]


@dataclass
class TimelineHour:
    hour: datetime
    count: int
    sentiment: str
    sentiment_breakdown: Dict[str, int]


@dataclass
class TopicTimeline:
    brand: str
    days: int
    timeline: List[TimelineHour]
    total_mentions: int
    first_half_avg: float
    second_half_avg: float
    trend: str  # "growing" | "declining" | "stable"


@dataclass
class TopicComparison:
    keyword: str
    category: str
    counts: Dict[str, int]
    total: int
    brands_using: int
    commonality: float


@dataclass
class TopicTheme:
    category: str
    topic_count: int
    total_mentions: int
    keywords: List[str]
    sentiment: str
    sentiment_breakdown: Dict[str, int]
    avg_importance: float


@dataclass
class CollectionResult:
    brand: str
    fetched: int = 0
    added: int = 0
    duplicates: int = 0
    invalid: int = 0
    failed_sources: List[str] = field(default_factory=list)
    spike: Optional[SpikeReport] = None


__all__ = [
    "JsonDict",
    "KNOWN_SOURCES",
    "UNKNOWN_AUTHOR",
    "CollectionResult",
    "EmergingTopic",
    "Engagement",
    "HourlyBucket",
    "Mention",
    "MentionPreview",
    "MentionStats",
    "SentimentResult",
    "SentimentSummary",
    "SpikeHistory",
    "SpikeReport",
    "TimelineHour",
    "Topic",
    "TopicCluster",
    "TopicComparison",
    "TopicTheme",
    "TopicTimeline",
    "TrendingTopic",
    "generate_mention_id",
]
