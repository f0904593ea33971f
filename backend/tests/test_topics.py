"""
Unit tests for keyword extraction and topic analysis.
"""

import math
from datetime import timedelta

import pytest

from buzztrack.core.topics import (
    TopicAnalyzer,
    calculate_tfidf,
    categorize_keyword,
    cluster_by_topic,
    compare_topics,
    detect_emerging_topics,
    extract_keywords,
    extract_topics,
    get_topic_themes,
)
from buzztrack.utils import now_utc


class TestKeywords:
    """Tokenizing, filtering and stemming."""

    def test_filters_noise(self):
        text = "The running shoes are AMAZING!!! 2024 http www Nike"

        assert extract_keywords(text) == ["runn", "shoes", "amaz"]

    def test_empty_text(self):
        assert extract_keywords("") == []
        assert extract_keywords(None) == []

    @pytest.mark.parametrize(
        "word, expected",
        [
            ("happiness", "happi"),
            ("quickly", "quick"),
            ("launched", "launch"),
            ("charging", "charg"),
            ("sled", "sled"),
            ("bling", "bling"),
        ],
    )
    def test_suffix_stripping_keeps_four_characters(self, word, expected):
        assert extract_keywords(word) == [expected]

    def test_punctuation_splits_tokens(self):
        assert extract_keywords("battery,charger;display") == ["battery", "charger", "display"]


class TestTfidf:
    """Pooled term frequency scoring."""

    def test_pooled_term_frequency(self):
        scores = calculate_tfidf(["battery life battery", "battery drain", "screen"])

        expected_battery = 3 * (math.log(4 / 3) + 1) * 1.2
        expected_life = 1 * (math.log(4 / 2) + 1)
        assert scores["battery"] == pytest.approx(expected_battery)
        assert scores["life"] == pytest.approx(expected_life)
        assert scores["battery"] > scores["drain"]

    def test_empty_documents(self):
        assert calculate_tfidf([]) == {}


class TestCategorize:
    @pytest.mark.parametrize(
        "keyword, category",
        [
            ("pricing", "price"),
            ("customer", "service"),
            ("battery", "innovation"),
            ("recall", "issues"),
            ("durability", "quality"),
            ("zzzz", "general"),
        ],
    )
    def test_categories(self, keyword, category):
        assert categorize_keyword(keyword) == category


class TestExtractTopics:
    """Topic assembly and the single-mention noise filter."""

    def test_single_mention_keyword_is_dropped(self, make_mention):
        mentions = [
            make_mention(content="battery died quickly"),
            make_mention(content="battery problems everywhere"),
            make_mention(content="screen looks gorgeous gorgeous gorgeous gorgeous"),
        ]

        topics = extract_topics(mentions)
        keywords = [t.keyword for t in topics]

        assert "battery" in keywords
        assert "gorgeous" not in keywords
        battery = topics[keywords.index("battery")]
        assert battery.count == 2
        assert battery.percentage_of_set == 66.7
        assert battery.category == "innovation"

    def test_sentiment_and_engagement(self, make_mention):
        mentions = [
            make_mention(content="delivery delayed again", sentiment="negative", likes=3),
            make_mention(content="delivery arrived late", sentiment="negative", comments=2),
            make_mention(content="delivery was fine", sentiment="positive"),
        ]

        topic = next(t for t in extract_topics(mentions) if t.keyword == "delivery")

        assert topic.count == 3
        assert topic.sentiment == "negative"
        assert topic.sentiment_breakdown == {"positive": 1, "neutral": 0, "negative": 2}
        assert topic.avg_engagement == 2
        polarization = 1 / 3
        assert topic.importance == round(0.4 * topic_score(mentions, "delivery") + 0.4 * 3 + 0.2 * polarization, 2)

    def test_substring_matching(self, make_mention):
        mentions = [
            make_mention(content="store visit today"),
            make_mention(content="the flagship store"),
            make_mention(content="storefront redesign"),
        ]

        topic = next(t for t in extract_topics(mentions) if t.keyword == "store")

        assert topic.count == 3

    def test_limit_and_empty(self, make_mention):
        assert extract_topics([]) == []
        mentions = [make_mention(content="alpha bravo charlie delta echo")] * 2
        assert len(extract_topics(mentions, limit=2)) == 2


def topic_score(mentions, keyword):
    return calculate_tfidf([m.content for m in mentions])[keyword]


class TestClustersAndThemes:
    def test_cluster_counts_and_samples(self, make_mention):
        mentions = [
            make_mention(content=f"battery issue number{i}", source="reddit" if i % 2 else "news", likes=i,
                         platform="r/tech" if i % 2 else "Reuters")
            for i in range(7)
        ]

        cluster = next(c for c in cluster_by_topic(mentions) if c.topic == "battery")

        assert cluster.count == 7
        assert cluster.sources == {"news": 4, "reddit": 3}
        assert cluster.platforms == {"Reuters": 4, "r/tech": 3}
        assert [s.engagement.likes for s in cluster.samples] == [6, 5, 4, 3, 2]

    def test_themes_grouped_by_category(self, make_mention):
        mentions = [
            make_mention(content="price increase announced"),
            make_mention(content="another price increase"),
            make_mention(content="price increase hurts"),
        ]

        themes = get_topic_themes(mentions)
        price = next(t for t in themes if t.category == "price")

        assert "price" in price.keywords
        assert price.total_mentions == 3
        assert themes == sorted(themes, key=lambda t: t.total_mentions, reverse=True)


class TestEmergingTopics:
    def test_new_topic_is_emerging(self, make_mention, now):
        mentions = [
            make_mention(content="foldable screen launch", age=timedelta(minutes=5)),
            make_mention(content="foldable screen launch", age=timedelta(minutes=10)),
            make_mention(content="screen cracked", age=timedelta(minutes=40)),
            make_mention(content="screen cracked", age=timedelta(minutes=50)),
        ]

        emerging = detect_emerging_topics(mentions, now=now)
        keywords = {t.keyword for t in emerging}

        assert "foldable" in keywords
        assert "screen" not in keywords
        foldable = next(t for t in emerging if t.keyword == "foldable")
        assert foldable.is_new is True
        assert foldable.growth is None
        assert foldable.previous_count == 0

    def test_accelerating_topic_is_emerging(self, make_mention, now):
        mentions = [make_mention(content="battery recall", age=timedelta(minutes=m)) for m in (2, 4, 6, 8)]
        mentions.append(make_mention(content="battery recall", age=timedelta(minutes=45)))

        battery = next(t for t in detect_emerging_topics(mentions, now=now) if t.keyword == "battery")

        assert battery.is_new is False
        assert battery.count == 4
        assert battery.previous_count == 1
        assert battery.growth == 300.0

    def test_empty_newest_window(self, make_mention, now):
        mentions = [make_mention(content="battery recall", age=timedelta(minutes=45))] * 3

        assert detect_emerging_topics(mentions, now=now) == []


class TestTopicAnalyzer:
    """Store-backed views."""

    @pytest.fixture
    def analyzer(self, store):
        return TopicAnalyzer(store)

    def test_trending_topics(self, analyzer, store, make_mention, now):
        for content in ("battery fire recall", "battery fire recall", "battery fire"):
            store.add(make_mention(content=content, age=timedelta(minutes=10)))
        store.add(make_mention(content="battery fire", age=timedelta(hours=3)))

        trending = analyzer.get_trending_topics(["ACME"], now=now)

        assert trending[0].keyword == "recall"
        assert trending[0].trend_ratio == 10.0
        assert trending[0].momentum == 20.0
        assert trending[0].velocity == "rapid"
        battery = next(t for t in trending if t.keyword == "battery")
        assert battery.recent_count == 3
        assert battery.old_count == 1
        assert battery.trend_ratio == 3.0
        assert battery.is_trending is True
        assert battery.velocity == "fast"

    def test_trending_without_recent_mentions(self, analyzer, store, make_mention, now):
        store.add(make_mention(content="battery fire", age=timedelta(hours=3)))

        assert analyzer.get_trending_topics(["Acme"], now=now) == []

    def test_timeline_growing(self, analyzer, store, make_mention, now):
        for minutes in (5, 10, 15):
            store.add(make_mention(age=timedelta(minutes=minutes), sentiment="positive"))
        store.add(make_mention(age=timedelta(hours=20)))

        timeline = analyzer.get_topic_timeline("Acme", days=1, now=now)

        assert len(timeline.timeline) == 24
        assert timeline.total_mentions == 4
        assert timeline.timeline[-1].count == 3
        assert timeline.timeline[-1].sentiment == "positive"
        assert timeline.trend == "growing"

    def test_timeline_declining_and_stable(self, analyzer, store, make_mention, now):
        assert analyzer.get_topic_timeline("Acme", days=1, now=now).trend == "stable"

        for hours in (20, 21, 22):
            store.add(make_mention(age=timedelta(hours=hours)))
        store.add(make_mention(age=timedelta(minutes=5)))

        assert analyzer.get_topic_timeline("Acme", days=1, now=now).trend == "declining"

    def test_compare_topics_across_brands(self, analyzer, store, make_mention):
        ref = now_utc()
        for _ in range(3):
            store.add(make_mention(brand="A", content="quality matters", now=ref))
        for _ in range(5):
            store.add(make_mention(brand="B", content="quality rocks", now=ref))

        comparison = analyzer.compare_topics_across_brands(["A", "B"], "24h")
        quality = comparison[0]

        assert quality.keyword == "quality"
        assert quality.counts == {"A": 3, "B": 5}
        assert quality.total == 8
        assert quality.brands_using == 2
        assert quality.commonality == 100.0
        assert quality.category == "quality"
        rocks = next(row for row in comparison if row.keyword == "rocks")
        assert rocks.brands_using == 1
        assert rocks.commonality == 50.0

    def test_compare_topics_empty(self):
        assert compare_topics({}) == []
        assert compare_topics({"A": []}) == []
