"""
Keyword extraction and topic analysis over mention text.

Topics are ranked with a TF-IDF variant in which term frequency is pooled
across the whole document set instead of being computed per document.
Keywords are matched back to mentions by substring, so "nike" also matches
"niketown".
"""
from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from buzztrack.core.spikes import preview_mention
from buzztrack.core.store import MentionStore
from buzztrack.models import (
    EmergingTopic,
    Mention,
    TimelineHour,
    Topic,
    TopicCluster,
    TopicComparison,
    TopicTheme,
    TopicTimeline,
    TrendingTopic,
)
from buzztrack.utils import (
    dominant_sentiment,
    empty_sentiment_counts,
    floor_to_hour,
    now_utc,
    round_half_up,
    timeframe_cutoff,
)

STOP_WORDS = frozenset({
    # English function words
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he",
    "in", "is", "it", "its", "of", "on", "that", "the", "to", "was", "will", "with",
    "this", "but", "they", "have", "had", "what", "when", "where", "who", "which",
    "why", "how", "all", "each", "every", "both", "few", "more", "most", "other",
    "some", "such", "than", "too", "very", "can", "just", "should", "now",
    "i", "me", "my", "myself", "we", "our", "ours", "ourselves", "you", "your",
    "am", "been", "being", "do", "does", "did", "doing", "would", "could", "ought",
    "get", "got", "getting", "like", "really", "one", "two", "new", "about", "after",
    "also", "because", "before", "between", "into", "over", "under", "their", "them",
    "there", "these", "those", "then", "were", "while", "with", "without", "here",
    "only", "even", "still", "much", "many", "make", "made", "said", "says", "going",
    "want", "know", "think", "thing", "things", "people", "year", "years", "today",
    # Social-media noise
    "http", "https", "www", "html", "amp", "reddit", "subreddit", "tweet", "tweets",
    "retweet", "thread", "post", "posts", "comment", "comments", "edit", "link",
    "lol", "lmao", "omg", "imo", "imho", "tbh", "yeah", "gonna", "wanna", "dont",
    "doesnt", "didnt", "cant", "wont", "isnt", "thats", "youre", "theyre",
})

# Brand names and generic business words
BRAND_WORDS = frozenset({
    "nike", "apple", "tesla", "brand", "brands", "company", "companies",
    "product", "products", "business", "inc", "corp", "official",
})

SUFFIXES = ("ness", "ing", "ly", "ed")
MIN_STEM_LENGTH = 4

TOPIC_CATEGORIES: Dict[str, Sequence[str]] = {
    "quality": ("quality", "durable", "durab", "build", "material", "premium", "cheap", "reliab", "sturdy", "last"),
    "price": ("price", "pric", "cost", "expensive", "afford", "discount", "sale", "deal", "value", "money", "dollar"),
    "service": ("service", "support", "customer", "help", "staff", "refund", "return", "delivery", "shipp", "warranty"),
    "product": ("design", "feature", "model", "release", "launch", "version", "style", "color", "size", "shoe", "phone", "car"),
    "experience": ("experience", "love", "hate", "enjoy", "comfort", "feel", "happy", "disappoint", "amazing", "awesome"),
    "innovation": ("innovat", "technology", "tech", "future", "smart", "software", "update", "battery", "autonom", "electric"),
    "comparison": ("better", "worse", "versus", "compar", "alternative", "competitor", "switch", "rival", "than"),
    "issues": ("issue", "problem", "broke", "fail", "bug", "crash", "recall", "lawsuit", "complaint", "scam", "defect"),
}
GENERAL_CATEGORY = "general"

CANDIDATE_MULTIPLIER = 2
MIN_TOPIC_COUNT = 2
TRENDING_RECENT_WINDOW = timedelta(hours=1)
TRENDING_OLD_WINDOW = timedelta(hours=6)
TRENDING_CANDIDATES = 30
NEW_TOPIC_RATIO = 10.0
MOMENTUM_RATIO_CAP = 20.0
EMERGING_WINDOW = timedelta(minutes=30)
EMERGING_ACCELERATION_COUNT = 3
TIMELINE_TREND_THRESHOLD = 0.3
COMPARISON_TOPICS_PER_BRAND = 15
COMPARISON_LIMIT = 20
CLUSTER_SAMPLES = 5

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def stem(word: str) -> str:
    """Strip one common suffix when a stem of at least four characters remains."""
    for suffix in SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= MIN_STEM_LENGTH:
            return word[: -len(suffix)]
    return word


def extract_keywords(text: Optional[str]) -> List[str]:
    """
    Tokenize text into candidate keywords.

    Args:
        text: Raw mention text

    Returns:
        Lowercased, filtered and lightly stemmed tokens in text order
    """
    if not text:
        return []

    cleaned = _WHITESPACE.sub(" ", _PUNCTUATION.sub(" ", text.lower())).strip()
    keywords = []
    for word in cleaned.split(" "):
        if len(word) <= 3 or word in STOP_WORDS or word in BRAND_WORDS or word.isdigit():
            continue
        keywords.append(stem(word))
    return keywords


def calculate_tfidf(documents: Sequence[str]) -> Dict[str, float]:
    """
    Score terms across a document set.

    tf is the pooled occurrence count over all documents, df the number of
    documents containing the term, idf = ln((N + 1) / (df + 1)) + 1, and
    terms present in more than one document get a 1.2 boost.

    Args:
        documents: One text per mention

    Returns:
        Mapping of term to score, in first-seen order
    """
    term_frequency: Counter = Counter()
    document_frequency: Counter = Counter()

    for document in documents:
        words = extract_keywords(document)
        term_frequency.update(words)
        document_frequency.update(set(words))

    total_docs = len(documents)
    scores: Dict[str, float] = {}
    for term, tf in term_frequency.items():
        df = document_frequency[term]
        idf = math.log((total_docs + 1) / (df + 1)) + 1
        boost = 1.2 if df > 1 else 1.0
        scores[term] = tf * idf * boost
    return scores


def categorize_keyword(keyword: str) -> str:
    """Map a keyword to a fixed theme by substring containment."""
    keyword = keyword.lower()
    for category, terms in TOPIC_CATEGORIES.items():
        if any(term in keyword for term in terms):
            return category
    return GENERAL_CATEGORY


def mentions_containing(mentions: Iterable[Mention], keyword: str) -> List[Mention]:
    keyword = keyword.lower()
    return [m for m in mentions if keyword in (m.content or "").lower()]


def _sentiment_counts(mentions: Iterable[Mention]) -> Dict[str, int]:
    counts = empty_sentiment_counts()
    for mention in mentions:
        counts[mention.sentiment] = counts.get(mention.sentiment, 0) + 1
    return counts


def extract_topics(mentions: Sequence[Mention], limit: int = 20) -> List[Topic]:
    """
    Extract the most important topics from a mention set.

    Args:
        mentions: Mentions whose content is analysed
        limit: Maximum number of topics returned

    Returns:
        Topics ordered by importance; keywords found in fewer than two
        mentions are dropped as noise
    """
    if not mentions or limit <= 0:
        return []

    scores = calculate_tfidf([m.content for m in mentions])
    candidates = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    candidates = candidates[: limit * CANDIDATE_MULTIPLIER]

    topics: List[Topic] = []
    for keyword, score in candidates:
        related = mentions_containing(mentions, keyword)
        count = len(related)
        if count < MIN_TOPIC_COUNT:
            continue

        breakdown = _sentiment_counts(related)
        polarization = abs(breakdown["positive"] - breakdown["negative"]) / count
        importance = 0.4 * score + 0.4 * count + 0.2 * polarization

        topics.append(Topic(
            keyword=keyword,
            score=round(score, 2),
            count=count,
            sentiment=dominant_sentiment(breakdown),
            sentiment_breakdown=breakdown,
            percentage_of_set=round(count / len(mentions) * 100, 1),
            category=categorize_keyword(keyword),
            avg_engagement=round_half_up(sum(m.total_engagement for m in related) / count),
            importance=round(importance, 2),
        ))

    topics.sort(key=lambda topic: topic.importance, reverse=True)
    return topics[:limit]


def cluster_by_topic(mentions: Sequence[Mention], top_topics: int = 10) -> List[TopicCluster]:
    """
    Group mentions under their extracted topics.

    Args:
        mentions: Mentions to cluster
        top_topics: Number of topics to build clusters for

    Returns:
        One cluster per topic with source/platform counts and the five
        highest-engagement mentions as samples
    """
    clusters = []
    for topic in extract_topics(mentions, top_topics):
        related = mentions_containing(mentions, topic.keyword)
        samples = sorted(related, key=lambda m: m.total_engagement, reverse=True)[:CLUSTER_SAMPLES]
        clusters.append(TopicCluster(
            topic=topic.keyword,
            category=topic.category,
            count=len(related),
            sentiment=topic.sentiment,
            sources=dict(Counter(m.source for m in related)),
            platforms=dict(Counter(m.platform or "unknown" for m in related)),
            samples=[preview_mention(m) for m in samples],
        ))
    return clusters


def detect_emerging_topics(
    mentions: Sequence[Mention],
    limit: int = 5,
    now: Optional[datetime] = None,
) -> List[EmergingTopic]:
    """
    Find topics that are new or accelerating in the last half hour.

    The newest window is [now - 30min, now) and the older window is
    [now - 60min, now - 30min). A topic is emerging when it is absent from
    the older window or appears in more than three newer mentions.

    Args:
        mentions: Mentions to scan
        limit: Maximum number of topics returned
        now: Reference instant

    Returns:
        Emerging topics by newer-window count, empty when the newest
        window has no mentions
    """
    now = now or now_utc()
    newer = [m for m in mentions if timedelta(0) <= now - m.timestamp < EMERGING_WINDOW]
    older = [m for m in mentions if EMERGING_WINDOW <= now - m.timestamp < 2 * EMERGING_WINDOW]
    if not newer:
        return []

    emerging = []
    for topic in extract_topics(newer, max(limit, 1) * 3):
        previous_count = len(mentions_containing(older, topic.keyword))
        is_new = previous_count == 0
        if not is_new and topic.count <= EMERGING_ACCELERATION_COUNT:
            continue
        growth = None if is_new else round((topic.count - previous_count) / previous_count * 100, 1)
        emerging.append(EmergingTopic(
            keyword=topic.keyword,
            count=topic.count,
            previous_count=previous_count,
            is_new=is_new,
            growth=growth,
            category=topic.category,
            sentiment=topic.sentiment,
        ))

    emerging.sort(key=lambda topic: topic.count, reverse=True)
    return emerging[:limit]


def get_topic_themes(mentions: Sequence[Mention], limit: int = 30) -> List[TopicTheme]:
    """Group extracted topics into their thematic categories."""
    grouped: Dict[str, List[Topic]] = defaultdict(list)
    for topic in extract_topics(mentions, limit):
        grouped[topic.category].append(topic)

    themes = []
    for category, topics in grouped.items():
        breakdown = empty_sentiment_counts()
        for topic in topics:
            for label, count in topic.sentiment_breakdown.items():
                breakdown[label] = breakdown.get(label, 0) + count
        themes.append(TopicTheme(
            category=category,
            topic_count=len(topics),
            total_mentions=sum(topic.count for topic in topics),
            keywords=[topic.keyword for topic in topics[:5]],
            sentiment=dominant_sentiment(breakdown),
            sentiment_breakdown=breakdown,
            avg_importance=round(sum(topic.importance for topic in topics) / len(topics), 2),
        ))

    themes.sort(key=lambda theme: theme.total_mentions, reverse=True)
    return themes


def _velocity(ratio: float) -> str:
    if ratio >= 5:
        return "rapid"
    if ratio >= 2:
        return "fast"
    return "moderate"


class TopicAnalyzer:
    """Topic views that read brand mentions from a MentionStore."""

    def __init__(self, store: MentionStore):
        self.store = store

    extract_topics = staticmethod(extract_topics)
    cluster_by_topic = staticmethod(cluster_by_topic)
    detect_emerging_topics = staticmethod(detect_emerging_topics)
    get_topic_themes = staticmethod(get_topic_themes)

    def brand_mentions(self, brand: str, timeframe: Optional[str] = None) -> List[Mention]:
        start = timeframe_cutoff(timeframe) if timeframe else None
        return self.store.get_all(brand=brand, start_date=start)

    def get_trending_topics(
        self,
        brands: Iterable[str],
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> List[TrendingTopic]:
        """
        Rank topics by momentum: last-hour volume against the 1-6 hour window.

        Args:
            brands: Brands whose mentions are pooled
            limit: Maximum number of topics returned
            now: Reference instant

        Returns:
            Trending topics ordered by momentum, empty without last-hour
            mentions
        """
        now = now or now_utc()
        pool: List[Mention] = []
        for brand in dict.fromkeys(b.strip().lower() for b in brands if b and b.strip()):
            pool.extend(self.store.get_all(brand=brand))

        recent = [m for m in pool if timedelta(0) <= now - m.timestamp < TRENDING_RECENT_WINDOW]
        old = [m for m in pool if TRENDING_RECENT_WINDOW <= now - m.timestamp < TRENDING_OLD_WINDOW]
        if not recent:
            return []

        trending = []
        for topic in extract_topics(recent, TRENDING_CANDIDATES):
            recent_count = topic.count
            old_count = len(mentions_containing(old, topic.keyword))
            if old_count > 0:
                ratio = recent_count / old_count
            else:
                ratio = NEW_TOPIC_RATIO if recent_count > 0 else 0.0
            momentum = recent_count * min(ratio, MOMENTUM_RATIO_CAP)

            trending.append(TrendingTopic(
                **vars(topic),
                recent_count=recent_count,
                old_count=old_count,
                trend_ratio=round(ratio, 2),
                momentum=round(momentum, 2),
                is_trending=ratio > 1.5,
                velocity=_velocity(ratio),
            ))

        trending.sort(key=lambda topic: topic.momentum, reverse=True)
        return trending[:limit]

    def get_topic_timeline(self, brand: str, days: int = 7, now: Optional[datetime] = None) -> TopicTimeline:
        """
        Hourly volume and dominant sentiment for a brand, with a coarse trend.

        The trend compares the average hourly count of the first half of the
        timeline with the second half: more than 30% up is "growing", more
        than 30% down is "declining", anything else "stable".
        """
        now = now or now_utc()
        hours = max(int(days), 0) * 24
        last_hour = floor_to_hour(now)
        first_hour = last_hour - timedelta(hours=max(hours - 1, 0))

        buckets: Dict[datetime, List[Mention]] = defaultdict(list)
        if hours:
            for mention in self.store.get_all(brand=brand):
                hour = floor_to_hour(mention.timestamp)
                if first_hour <= hour <= last_hour:
                    buckets[hour].append(mention)

        timeline = []
        for offset in range(hours):
            hour = first_hour + timedelta(hours=offset)
            counts = _sentiment_counts(buckets.get(hour, []))
            timeline.append(TimelineHour(
                hour=hour,
                count=sum(counts.values()),
                sentiment=dominant_sentiment(counts),
                sentiment_breakdown=counts,
            ))

        half = len(timeline) // 2
        first_half = timeline[:half]
        second_half = timeline[half:]
        first_avg = sum(h.count for h in first_half) / len(first_half) if first_half else 0.0
        second_avg = sum(h.count for h in second_half) / len(second_half) if second_half else 0.0

        if first_avg == 0:
            trend = "growing" if second_avg > 0 else "stable"
        else:
            change = (second_avg - first_avg) / first_avg
            if change > TIMELINE_TREND_THRESHOLD:
                trend = "growing"
            elif change < -TIMELINE_TREND_THRESHOLD:
                trend = "declining"
            else:
                trend = "stable"

        return TopicTimeline(
            brand=brand,
            days=days,
            timeline=timeline,
            total_mentions=sum(h.count for h in timeline),
            first_half_avg=round(first_avg, 2),
            second_half_avg=round(second_avg, 2),
            trend=trend,
        )

    def compare_topics_across_brands(self, brands: Sequence[str], timeframe: str = "24h") -> List[TopicComparison]:
        """Tabulate each brand's top topics side by side."""
        return compare_topics(
            {brand: self.brand_mentions(brand, timeframe) for brand in brands}
        )


def compare_topics(mentions_by_brand: Mapping[str, Sequence[Mention]]) -> List[TopicComparison]:
    """
    Union each brand's top-15 topics and count their usage per brand.

    Args:
        mentions_by_brand: Brand name to that brand's mentions

    Returns:
        Up to 20 keywords ordered by total count across brands
    """
    brand_topics = {
        brand: {topic.keyword: topic.count for topic in extract_topics(mentions, COMPARISON_TOPICS_PER_BRAND)}
        for brand, mentions in mentions_by_brand.items()
    }
    total_brands = len(brand_topics)

    keywords: Dict[str, None] = {}
    for topics in brand_topics.values():
        keywords.update(dict.fromkeys(topics))

    comparison = []
    for keyword in keywords:
        counts = {brand: topics.get(keyword, 0) for brand, topics in brand_topics.items()}
        brands_using = sum(1 for count in counts.values() if count > 0)
        comparison.append(TopicComparison(
            keyword=keyword,
            category=categorize_keyword(keyword),
            counts=counts,
            total=sum(counts.values()),
            brands_using=brands_using,
            commonality=round(brands_using / total_brands * 100, 1) if total_brands else 0.0,
        ))

    comparison.sort(key=lambda row: row.total, reverse=True)
    return comparison[:COMPARISON_LIMIT]


__all__ = [
    "BRAND_WORDS",
    "STOP_WORDS",
    "TOPIC_CATEGORIES",
    "TopicAnalyzer",
    "calculate_tfidf",
    "categorize_keyword",
    "cluster_by_topic",
    "compare_topics",
    "detect_emerging_topics",
    "extract_keywords",
    "extract_topics",
    "get_topic_themes",
    "stem",
]
