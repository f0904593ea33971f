"""
In-memory mention store with URL deduplication, bounded capacity and a
filter/aggregate query surface.

The store is volatile: it is rebuilt from the sources after a restart.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from buzztrack.models import KNOWN_SOURCES, Mention, MentionStats
from buzztrack.utils import empty_sentiment_counts, parse_instant, round_half_up, timeframe_cutoff

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 15000


def _brand_key(brand: Optional[str]) -> str:
    return (brand or "").strip().lower()


class MentionStore:
    """Bounded, insertion-ordered collection of mentions.

    Eviction removes the oldest *inserted* mentions, which is not always the
    oldest by timestamp because sources are collected concurrently.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._mentions: List[Mention] = []
        self._by_id: Dict[str, Mention] = {}
        self._urls: set[str] = set()
        # add() checks then mutates; API threads read while the loop writes
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._mentions)

    def add(self, mention: Mention) -> Optional[Mention]:
        """
        Insert a mention unless its URL (or id) is already stored.

        Args:
            mention: Mention to insert

        Returns:
            The stored mention, or None when it was a duplicate
        """
        with self._lock:
            if mention.url and mention.url in self._urls:
                logger.debug("Duplicate blocked by URL: %s", mention.url)
                return None
            if mention.id in self._by_id:
                logger.debug("Duplicate blocked by id: %s", mention.id)
                return None

            self._mentions.append(mention)
            self._by_id[mention.id] = mention
            if mention.url:
                self._urls.add(mention.url)

            overflow = len(self._mentions) - self.max_size
            if overflow > 0:
                for evicted in self._mentions[:overflow]:
                    self._by_id.pop(evicted.id, None)
                    if evicted.url:
                        self._urls.discard(evicted.url)
                del self._mentions[:overflow]

            return mention

    def get_all(
        self,
        brand: Optional[str] = None,
        source: Optional[str] = None,
        sentiment: Optional[str] = None,
        start_date: datetime | str | None = None,
        end_date: datetime | str | None = None,
    ) -> List[Mention]:
        """
        Return mentions matching every given filter, newest timestamp first.

        Args:
            brand: Exact brand, compared case-insensitively after trimming
            source: Exact source name
            sentiment: Exact sentiment label
            start_date: Inclusive lower timestamp bound
            end_date: Inclusive upper timestamp bound

        Returns:
            Filtered mentions sorted by timestamp descending
        """
        start = self._parse_bound(start_date, "start_date")
        end = self._parse_bound(end_date, "end_date")
        brand_key = _brand_key(brand) if brand else None

        with self._lock:
            filtered = list(self._mentions)

        if brand_key:
            filtered = [m for m in filtered if _brand_key(m.brand) == brand_key]
        if source:
            filtered = [m for m in filtered if m.source == source]
        if sentiment:
            filtered = [m for m in filtered if m.sentiment == sentiment]
        if start is not None:
            filtered = [m for m in filtered if m.timestamp >= start]
        if end is not None:
            filtered = [m for m in filtered if m.timestamp <= end]

        filtered.sort(key=lambda m: m.timestamp, reverse=True)
        return filtered

    def snapshot(self) -> List[Mention]:
        """All mentions in insertion order."""
        with self._lock:
            return list(self._mentions)

    def get_by_id(self, mention_id: str) -> Optional[Mention]:
        with self._lock:
            return self._by_id.get(mention_id)

    def get_stats(self, brand: str, timeframe: str = "24h") -> MentionStats:
        """
        Aggregate a brand's mentions over a timeframe.

        Args:
            brand: Brand name (case-insensitive exact match)
            timeframe: Duration string such as "24h" or "7d"; malformed
                strings fall back to 24h

        Returns:
            MentionStats, zero-valued when nothing matches
        """
        cutoff = timeframe_cutoff(timeframe)
        brand_key = _brand_key(brand)

        with self._lock:
            relevant = [
                m for m in self._mentions
                if brand_key and _brand_key(m.brand) == brand_key and m.timestamp >= cutoff
            ]

        sentiment_counts = empty_sentiment_counts()
        source_counts = {source: 0 for source in KNOWN_SOURCES}
        total_engagement = 0
        total_score = 0.0

        for mention in relevant:
            sentiment_counts[mention.sentiment] = sentiment_counts.get(mention.sentiment, 0) + 1
            source_counts[mention.source] = source_counts.get(mention.source, 0) + 1
            total_engagement += mention.total_engagement
            total_score += mention.sentiment_score

        total = len(relevant)
        return MentionStats(
            total=total,
            timeframe=timeframe,
            sentiment=sentiment_counts,
            sources=source_counts,
            avg_engagement=round_half_up(total_engagement / total) if total else 0,
            avg_sentiment=round(total_score / total, 3) if total else 0.0,
        )

    def clear(self) -> None:
        with self._lock:
            self._mentions.clear()
            self._by_id.clear()
            self._urls.clear()
        logger.info("Mention store cleared")

    def debug_brand(self, brand: str) -> List[Mention]:
        """Return a brand's mentions and log how the brand is spelled in storage."""
        brand_key = _brand_key(brand)
        with self._lock:
            matches = [m for m in self._mentions if _brand_key(m.brand) == brand_key]
        spellings = sorted({m.brand for m in matches})
        logger.info(
            "Debug: found %d mentions for %r (stored as: %s)",
            len(matches), brand, ", ".join(spellings) or "-",
        )
        return matches

    @staticmethod
    def _parse_bound(value: datetime | str | None, name: str) -> Optional[datetime]:
        if value is None or value == "":
            return None
        parsed = parse_instant(value)
        if parsed is None:
            logger.warning("Ignoring unparseable %s filter: %r", name, value)
        return parsed


__all__ = ["DEFAULT_MAX_SIZE", "MentionStore"]
