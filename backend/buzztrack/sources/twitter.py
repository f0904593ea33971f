"""
Twitter/X API v2 recent-search fetcher.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, List

from buzztrack.models import Engagement, Mention
from buzztrack.sources.common import MentionFetcher

logger = logging.getLogger(__name__)

REQUESTS_PER_WINDOW = 100
RATE_WINDOW_SECONDS = 15 * 60
MAX_RESULTS = 100
MIN_RESULTS = 10
MAX_CONTENT_LENGTH = 250

_CORPORATE_WORDS = re.compile(r"\b(inc|corp|corporation|llc|company|the|official)\b", re.IGNORECASE)


def build_search_query(brand: str) -> str:
    """
    Build a recent-search query for a brand.

    Args:
        brand: Brand name

    Returns:
        Exact phrase, hashtag and handle alternatives, excluding retweets
        and replies, English only
    """
    handle = re.sub(r"\s+", "", _CORPORATE_WORDS.sub("", brand.lower()).strip())
    terms = [f'"{brand}"', f"#{handle}", f"@{handle}"]
    return f"({' OR '.join(terms)}) -is:retweet lang:en -is:reply"


def truncate_tweet(text: str) -> str:
    if len(text) <= MAX_CONTENT_LENGTH:
        return text
    return text[: MAX_CONTENT_LENGTH - 3] + "..."


class RateLimiter:
    """Fixed-window request counter."""

    def __init__(
        self,
        max_requests: int = REQUESTS_PER_WINDOW,
        window_seconds: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.count = 0
        self.window_start = clock()

    def acquire(self) -> bool:
        now = self.clock()
        if now - self.window_start > self.window_seconds:
            self.count = 0
            self.window_start = now
        if self.count >= self.max_requests:
            return False
        self.count += 1
        return True


class TwitterFetcher(MentionFetcher):
    source = "twitter"

    def __init__(
        self,
        bearer_token: str = "",
        base_url: str = "https://api.twitter.com/2",
        enabled: bool = False,
        rate_limiter: RateLimiter | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.bearer_token = bearer_token
        self.base_url = base_url.rstrip("/")
        self._enabled = enabled
        self.rate_limiter = rate_limiter or RateLimiter()

    @property
    def enabled(self) -> bool:
        return self._enabled and bool(self.bearer_token)

    async def _fetch(self, brand: str, limit: int) -> List[Mention]:
        if not self.rate_limiter.acquire():
            logger.warning(
                "Twitter rate limit reached (%d requests per %d minutes), skipping %s",
                self.rate_limiter.max_requests, self.rate_limiter.window_seconds // 60, brand,
            )
            return []

        params = {
            "query": build_search_query(brand),
            "tweet.fields": "created_at,public_metrics,author_id,entities,text",
            "user.fields": "name,username,verified,public_metrics",
            "expansions": "author_id",
            "max_results": max(MIN_RESULTS, min(limit, MAX_RESULTS)),
            "sort_order": "relevancy",
        }
        headers = {"Authorization": f"Bearer {self.bearer_token}", "User-Agent": "BuzzTrack/1.0"}
        async with self.client(headers=headers) as client:
            r = await client.get(f"{self.base_url}/tweets/search/recent", params=params)
            if r.status_code == 429:
                logger.warning("Twitter API returned 429 for %s", brand)
            r.raise_for_status()
            data = r.json()

        users = {user["id"]: user for user in (data.get("includes") or {}).get("users", [])}
        mentions: List[Mention] = []
        for tweet in data.get("data") or []:
            author = users.get(tweet.get("author_id"))
            metrics = tweet.get("public_metrics") or {}
            text = tweet.get("text") or ""
            if author:
                url = f"https://twitter.com/{author['username']}/status/{tweet['id']}"
            else:
                url = f"https://twitter.com/i/web/status/{tweet['id']}"
            entities = tweet.get("entities") or {}

            mentions.append(
                self.build_mention(
                    brand,
                    key=tweet["id"],
                    content=truncate_tweet(text),
                    scored_text=text,
                    platform="twitter",
                    url=url,
                    author=f"@{author['username']}" if author else None,
                    timestamp=tweet.get("created_at"),
                    engagement=Engagement.from_dict({
                        "likes": metrics.get("like_count"),
                        "comments": metrics.get("reply_count"),
                        "shares": metrics.get("retweet_count"),
                    }),
                    metadata={
                        "tweet_id": tweet["id"],
                        "author_id": tweet.get("author_id"),
                        "verified": bool(author and author.get("verified")),
                        "followers_count": ((author or {}).get("public_metrics") or {}).get("followers_count", 0),
                        "hashtags": [h.get("tag") for h in entities.get("hashtags", [])],
                    },
                )
            )
        return mentions
