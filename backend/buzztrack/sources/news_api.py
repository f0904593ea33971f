"""
NewsAPI.org fetcher for brand mentions in news articles.
"""
from __future__ import annotations

from typing import List

from buzztrack.models import Engagement, Mention
from buzztrack.sources.common import MentionFetcher, clean_text
from buzztrack.utils import extract_domain_from_url

MAX_PAGE_SIZE = 100


class NewsApiFetcher(MentionFetcher):
    """Searches ``/v2/everything`` for articles mentioning a brand."""

    source = "news"

    def __init__(self, api_key: str = "", base_url: str = "https://newsapi.org/v2", **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _fetch(self, brand: str, limit: int) -> List[Mention]:
        params = {
            "q": brand,
            "pageSize": min(limit, MAX_PAGE_SIZE),
            "sortBy": "publishedAt",
            "language": "en",
        }
        async with self.client(headers={"X-Api-Key": self.api_key}) as client:
            r = await client.get(f"{self.base_url}/everything", params=params)
            r.raise_for_status()
            data = r.json()

        mentions: List[Mention] = []
        for article in data.get("articles") or []:
            title = clean_text(article.get("title"))
            url = article.get("url")
            if not title:
                continue

            description = clean_text(article.get("description"))
            source = article.get("source") or {}
            publisher = clean_text(source.get("name"))
            platform = publisher or extract_domain_from_url(url) or "unknown"

            mentions.append(
                self.build_mention(
                    brand,
                    key=url or title,
                    content=title,
                    scored_text=f"{title} {description}",
                    platform=platform,
                    url=url,
                    author=article.get("author") or publisher,
                    timestamp=article.get("publishedAt"),
                    engagement=Engagement(),
                    metadata={
                        "description": description,
                        "source_name": publisher,
                        "source_id": source.get("id"),
                        "image_url": article.get("urlToImage"),
                    },
                )
            )
        return mentions
