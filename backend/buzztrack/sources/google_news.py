"""
Google News RSS fetcher, used for news mentions when no NewsAPI key is set.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

import feedparser

from buzztrack.models import Engagement, Mention
from buzztrack.sources.common import MentionFetcher, clean_text
from buzztrack.utils import extract_domain_from_url

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]+>")


def extract_publisher_from_entry(entry) -> Optional[str]:
    """
    Extract publisher name from RSS entry.

    Args:
        entry: RSS feed entry

    Returns:
        Publisher name or None if not found
    """
    source = entry.get("source")
    if isinstance(source, dict):
        title = source.get("title")
        if title:
            return clean_text(title)

    # Fallback: extract from summary font tags
    summary = entry.get("summary", "") or ""
    font_matches = re.findall(r"<font[^>]*>([^<]+)</font>", summary, flags=re.IGNORECASE)
    return clean_text(font_matches[-1]) if font_matches else None


def strip_publisher_suffix(title: str, publisher: Optional[str]) -> str:
    """Google News titles end with " - Publisher"; drop it."""
    if publisher and title.endswith(f" - {publisher}"):
        return title[: -len(publisher) - 3].rstrip()
    return title


class GoogleNewsFetcher(MentionFetcher):
    """Fetches news articles from Google News RSS feeds."""

    source = "news"
    BASE_URL = "https://news.google.com/rss/search"

    def __init__(self, base_url: str = BASE_URL, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url

    async def _fetch(self, brand: str, limit: int) -> List[Mention]:
        params = {"q": f'"{brand}"', "hl": "en-US", "gl": "US", "ceid": "US:en"}
        async with self.client(follow_redirects=True) as client:
            r = await client.get(self.base_url, params=params)
            r.raise_for_status()
            feed = feedparser.parse(r.text)

        mentions: List[Mention] = []
        for entry in feed.entries[:limit]:
            link = clean_text(entry.get("link"))
            publisher = extract_publisher_from_entry(entry)
            title = strip_publisher_suffix(clean_text(entry.get("title")), publisher)
            if not title or not link:
                continue

            summary = clean_text(_TAG.sub(" ", entry.get("summary", "") or ""))
            mentions.append(
                self.build_mention(
                    brand,
                    key=link,
                    content=title,
                    scored_text=f"{title} {summary}",
                    platform=publisher or extract_domain_from_url(link) or "Google News",
                    url=link,
                    author=publisher,
                    timestamp=entry.get("published"),
                    engagement=Engagement(),
                    metadata={"publisher": publisher, "google_rss": True},
                )
            )
        return mentions
