# buzztrack/schemas.py
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Sentiment = Literal["positive", "neutral", "negative"]


class ApiModel(BaseModel):
    """Serialized with camelCase keys; builds from the core dataclasses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Engagement(ApiModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0


class Mention(ApiModel):
    id: str
    brand: str
    source: str
    platform: str = ""
    content: str = ""
    url: Optional[str] = None
    author: str = "Unknown"
    sentiment: Sentiment = "neutral"
    sentiment_score: float = 0.0
    timestamp: datetime
    engagement: Engagement = Field(default_factory=Engagement)
    metadata: dict = Field(default_factory=dict)


class MentionPreview(ApiModel):
    id: str
    content: str
    url: Optional[str] = None
    source: str
    platform: str = ""
    sentiment: Sentiment
    timestamp: datetime
    engagement: Engagement


class MentionStats(ApiModel):
    total: int
    timeframe: str
    sentiment: Dict[str, int]
    sources: Dict[str, int]
    avg_engagement: int
    avg_sentiment: float


class SentimentSummary(ApiModel):
    dominant: Sentiment
    breakdown: Dict[str, int]
    avg_score: float


class SpikeReport(ApiModel):
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


class HourlyBucket(ApiModel):
    timestamp: datetime
    count: int
    is_spike: bool


class SpikeHistory(ApiModel):
    brand: str
    period: str
    timeline: List[HourlyBucket]
    avg_hourly_mentions: float
    total_mentions: int
    spike_hours: int


class Topic(ApiModel):
    keyword: str
    score: float
    count: int
    sentiment: Sentiment
    sentiment_breakdown: Dict[str, int]
    percentage_of_set: float
    category: str
    avg_engagement: int
    importance: float


class TrendingTopic(Topic):
    recent_count: int
    old_count: int
    trend_ratio: float
    momentum: float
    is_trending: bool
    velocity: Literal["rapid", "fast", "moderate"]


class EmergingTopic(ApiModel):
    keyword: str
    count: int
    previous_count: int
    is_new: bool
    growth: Optional[float] = None
    category: str
    sentiment: Sentiment


class TopicCluster(ApiModel):
    topic: str
    category: str
    count: int
    sentiment: Sentiment
    sources: Dict[str, int]
    platforms: Dict[str, int]
    samples: List[MentionPreview]


class TimelineHour(ApiModel):
    hour: datetime
    count: int
    sentiment: Sentiment
    sentiment_breakdown: Dict[str, int]


class TopicTimeline(ApiModel):
    brand: str
    days: int
    timeline: List[TimelineHour]
    total_mentions: int
    first_half_avg: float
    second_half_avg: float
    trend: Literal["growing", "declining", "stable"]


class TopicComparison(ApiModel):
    keyword: str
    category: str
    # keyed by brand name, so not camelCased
    counts: Dict[str, int]
    total: int
    brands_using: int
    commonality: float


class TopicTheme(ApiModel):
    category: str
    topic_count: int
    total_mentions: int
    keywords: List[str]
    sentiment: Sentiment
    sentiment_breakdown: Dict[str, int]
    avg_importance: float


# Request bodies

class BrandRequest(ApiModel):
    brand: str = Field(..., min_length=1, max_length=100)


# Response envelopes

class Envelope(ApiModel):
    success: bool = True


class ErrorResponse(Envelope):
    success: bool = False
    error: str


class MentionListResponse(Envelope):
    count: int
    mentions: List[Mention]


class MentionResponse(Envelope):
    mention: Mention


class StatsResponse(Envelope):
    brand: str
    timeframe: str
    stats: MentionStats


class TopBrand(ApiModel):
    brand: str
    mentions: int
    sentiment: Sentiment
    engagement: int


class PlatformOverview(ApiModel):
    timeframe: str
    total_mentions: int
    total_brands: int
    platform_breakdown: Dict[str, int]
    sentiment_overview: Dict[str, int]
    top_performing_brands: List[TopBrand]


class OverviewResponse(Envelope):
    overview: PlatformOverview


class SourceSummary(ApiModel):
    total_mentions: int
    avg_sentiment: float
    avg_engagement: float
    top_brands: List[str]


class SourcesComparisonResponse(Envelope):
    timeframe: str
    comparison: Dict[str, SourceSummary]


class BrandListResponse(Envelope):
    count: int
    brands: List[str]


class BrandChangeResponse(Envelope):
    message: str
    tracked_brands: List[str]


class CollectionResponse(Envelope):
    message: str
    brand: str
    fetched: int
    added: int
    duplicates: int
    failed_sources: List[str]
    spike_detected: bool


class BrandOverview(ApiModel):
    brand: str
    mentions24h: int = Field(alias="mentions24h")
    sentiment: Dict[str, int]
    has_spike: bool
    avg_engagement: int


class BrandOverviewResponse(Envelope):
    overview: List[BrandOverview]


class SpikeResponse(Envelope):
    spike: SpikeReport


class SpikeHistoryResponse(Envelope):
    history: SpikeHistory


class TrendingTopicsResponse(Envelope):
    trending_topics: List[TrendingTopic]


class BrandTopicsResponse(Envelope):
    brand: str
    timeframe: str
    topics: List[Topic]
    total_mentions: int


class ClustersResponse(Envelope):
    brand: str
    timeframe: str
    clusters: List[TopicCluster]


class TimelineResponse(Envelope):
    brand: str
    timeline: TopicTimeline


class ComparisonResponse(Envelope):
    brands: List[str]
    timeframe: str
    comparison: List[TopicComparison]


class ThemesResponse(Envelope):
    brand: str
    timeframe: str
    themes: List[TopicTheme]
    message: Optional[str] = None


class EmergingResponse(Envelope):
    brand: str
    emerging: List[EmergingTopic]
    message: Optional[str] = None


class RecentMention(ApiModel):
    id: str
    source: str
    content: str
    timestamp: datetime
    sentiment: Sentiment


class CollectionStatusResponse(Envelope):
    brand: str
    total_mentions: int
    sources: Dict[str, int]
    recent_mentions: List[RecentMention]
    tracked: bool
