"""
Mention collection coordinator that aggregates from multiple sources.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Sequence

from buzztrack.config import Settings
from buzztrack.core.sentiment import SentimentScorer
from buzztrack.core.spikes import SpikeDetector
from buzztrack.core.store import MentionStore
from buzztrack.models import CollectionResult, Mention, SpikeReport
from buzztrack.services.notifier import EventSink, NullEventSink
from buzztrack.sources.common import MentionFetcher
from buzztrack.sources.google_news import GoogleNewsFetcher
from buzztrack.sources.news_api import NewsApiFetcher
from buzztrack.sources.reddit import RedditFetcher
from buzztrack.sources.twitter import TwitterFetcher

logger = logging.getLogger(__name__)

FETCH_LIMITS = {"reddit": 15, "news": 10, "twitter": 10}
DEFAULT_FETCH_LIMIT = 10


def build_fetchers(settings: Settings, scorer: Optional[SentimentScorer] = None) -> List[MentionFetcher]:
    """
    Create the enabled source fetchers.

    Args:
        settings: Application settings
        scorer: Sentiment scorer shared by all fetchers

    Returns:
        Reddit and news fetchers, plus Twitter when enabled; news uses
        Google News RSS when no NewsAPI key is configured
    """
    scorer = scorer or SentimentScorer(
        settings.SENTIMENT_PROVIDER,
        settings.SENTIMENT_POSITIVE_THRESHOLD,
        settings.SENTIMENT_NEGATIVE_THRESHOLD,
    )
    common = {"scorer": scorer, "timeout": settings.HTTP_TIMEOUT_SECONDS}

    fetchers: List[MentionFetcher] = [
        RedditFetcher(
            base_url=settings.REDDIT_BASE_URL,
            subreddits=settings.reddit_subreddits,
            user_agent=settings.REDDIT_USER_AGENT,
            **common,
        )
    ]
    if settings.NEWS_API_KEY:
        fetchers.append(NewsApiFetcher(api_key=settings.NEWS_API_KEY, base_url=settings.NEWS_API_BASE_URL, **common))
    else:
        logger.info("No NEWS_API_KEY configured, using Google News RSS for news mentions")
        fetchers.append(GoogleNewsFetcher(**common))
    if settings.TWITTER_ENABLED:
        fetchers.append(
            TwitterFetcher(
                bearer_token=settings.X_BEARER_TOKEN,
                base_url=settings.TWITTER_BASE_URL,
                enabled=True,
                **common,
            )
        )
    return fetchers


def _fetcher_name(fetcher) -> str:
    return getattr(fetcher, "source", "") or type(fetcher).__name__


class MentionCollector:
    """Fans out to the fetchers, feeds the store and emits events."""

    def __init__(
        self,
        store: MentionStore,
        detector: SpikeDetector,
        fetchers: Sequence[MentionFetcher],
        sink: Optional[EventSink] = None,
    ):
        self.store = store
        self.detector = detector
        self.fetchers = list(fetchers)
        self.sink: EventSink = sink or NullEventSink()

    async def collect_brand(self, brand: str) -> CollectionResult:
        """
        Collect mentions of a brand from every source.

        A failing source is logged and contributes nothing; the others are
        still ingested.

        Args:
            brand: Brand name

        Returns:
            CollectionResult with counts, failed sources and the spike report
            when one was detected
        """
        logger.info("Collecting data for %s", brand)
        result = CollectionResult(brand=brand)

        outcomes = await asyncio.gather(
            *(f.fetch(brand, FETCH_LIMITS.get(_fetcher_name(f), DEFAULT_FETCH_LIMIT)) for f in self.fetchers),
            return_exceptions=True,
        )

        added: List[Mention] = []
        for fetcher, outcome in zip(self.fetchers, outcomes):
            name = _fetcher_name(fetcher)
            if isinstance(outcome, BaseException):
                logger.warning("Source %s failed for %s: %r", name, brand, outcome)
                result.failed_sources.append(name)
                continue

            for record in outcome or []:
                result.fetched += 1
                try:
                    mention = record if isinstance(record, Mention) else Mention.from_dict(record)
                except (AttributeError, TypeError, ValueError) as e:
                    result.invalid += 1
                    logger.warning("Skipping malformed %s record for %s: %s", name, brand, e)
                    continue
                if self.store.add(mention) is None:
                    result.duplicates += 1
                else:
                    added.append(mention)

        result.added = len(added)
        logger.info(
            "Collected %d total mentions (%d new) for %s",
            result.fetched, result.added, brand,
        )

        for mention in added:
            await self._emit(self.sink.emit_mention, mention)

        spike = self.detector.detect_spikes(brand)
        if spike.detected:
            result.spike = spike
            await self._emit(self.sink.emit_spike, spike)
            logger.warning("Spike alert sent for %s", brand)

        return result

    async def sweep(self, brands: Iterable[str]) -> List[SpikeReport]:
        """Scan the given brands for spikes and emit one alert per spike."""
        spikes = self.detector.monitor_all_brands(list(brands))
        for report in spikes:
            await self._emit(self.sink.emit_spike, report)
        return spikes

    async def run_sweeps(self, brands: Callable[[], Iterable[str]], interval_seconds: float) -> None:
        """Run ``sweep`` forever, re-reading the brand list each time."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep(brands())
            except Exception:
                logger.exception("Spike sweep failed")

    async def _emit(self, emit, payload) -> None:
        try:
            await emit(payload)
        except Exception:
            logger.exception("Event delivery failed")
