"""
Common utilities for mention source fetchers.
"""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from buzztrack.core.sentiment import SentimentScorer
from buzztrack.models import Engagement, Mention
from buzztrack.utils import normalize_text, now_utc, parse_instant

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


def make_mention_id(source: str, key: str) -> str:
    """
    Generate a deterministic ID for a source record.

    Args:
        source: Source name, e.g. "reddit"
        key: Source-specific identifier or URL

    Returns:
        32-character hexadecimal string ID
    """
    raw = f"{source}|{key}".encode("utf-8", "ignore")
    return hashlib.blake2b(raw, digest_size=16).hexdigest()


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a source timestamp and convert to UTC.

    Args:
        value: Date string, epoch seconds, datetime or None

    Returns:
        UTC datetime, or the current UTC time if the value is empty or
        unparseable
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return now_utc()
    return parse_instant(value) or now_utc()


def clean_text(text: Optional[str]) -> str:
    """
    Clean and normalize text content.

    Args:
        text: Raw text string or None

    Returns:
        Cleaned text string, empty string if input is None
    """
    return normalize_text(text)


class MentionFetcher:
    """Base class for HTTP-backed fetchers.

    Subclasses implement ``_fetch`` and may raise; ``fetch`` turns network and
    parsing failures into an empty result.
    """

    source = ""

    def __init__(
        self,
        scorer: Optional[SentimentScorer] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.scorer = scorer or SentimentScorer()
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return True

    def client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport, **kwargs)

    async def fetch(self, brand: str, limit: int = 25) -> List[Mention]:
        """
        Fetch mentions of a brand.

        Args:
            brand: Brand name to search for
            limit: Maximum number of records requested from the source

        Returns:
            List of Mention objects, empty on any failure
        """
        if not self.enabled:
            logger.debug("%s source disabled, skipping %s", self.source, brand)
            return []
        try:
            mentions = await self._fetch(brand, limit)
        except httpx.HTTPError as e:
            logger.warning("%s fetch failed for %s: %s", self.source, brand, e)
            return []
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s returned an unexpected payload for %s: %s", self.source, brand, e)
            return []

        logger.info("Fetched %d %s mentions for %s", len(mentions), self.source, brand)
        return mentions

    async def _fetch(self, brand: str, limit: int) -> List[Mention]:
        raise NotImplementedError

    def build_mention(
        self,
        brand: str,
        *,
        key: str,
        content: str,
        scored_text: str,
        platform: str,
        url: Optional[str],
        author: Optional[str],
        timestamp: Any,
        engagement: Engagement,
        metadata: dict,
    ) -> Mention:
        """Score ``scored_text`` and assemble a Mention for this source."""
        sentiment = self.scorer.score(scored_text, brand)
        return Mention(
            id=make_mention_id(self.source, key),
            brand=brand,
            source=self.source,
            platform=platform,
            content=content,
            url=url or None,
            author=author or "Unknown",
            sentiment=sentiment.label,
            sentiment_score=sentiment.score,
            timestamp=parse_utc_datetime(timestamp),
            engagement=engagement,
            metadata=metadata,
        )
