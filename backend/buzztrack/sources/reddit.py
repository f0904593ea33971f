"""
File: buzztrack/sources/reddit.py
Reddit search JSON fetcher (unauthenticated). For production, prefer OAuth API.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx

from buzztrack.models import Engagement, Mention
from buzztrack.sources.common import MentionFetcher, clean_text

logger = logging.getLogger(__name__)

DEFAULT_SUBREDDITS = ("all", "technology", "business", "news")
MAX_SUBREDDITS = 2


class RedditFetcher(MentionFetcher):
    source = "reddit"

    def __init__(
        self,
        base_url: str = "https://www.reddit.com",
        subreddits: Optional[Sequence[str]] = None,
        user_agent: str = "BuzzTrack/1.0 (Brand Monitoring Tool)",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.subreddits = list(subreddits or DEFAULT_SUBREDDITS)
        self.user_agent = user_agent

    async def _fetch(self, brand: str, limit: int) -> List[Mention]:
        mentions: List[Mention] = []
        async with self.client(headers={"User-Agent": self.user_agent}) as client:
            # Only the first two subreddits are searched
            for subreddit in self.subreddits[:MAX_SUBREDDITS]:
                try:
                    mentions.extend(await self._search(client, brand, subreddit, limit))
                except httpx.HTTPError as e:
                    logger.warning("Reddit r/%s search failed for %s: %s", subreddit, brand, e)
        return mentions

    async def _search(self, client: httpx.AsyncClient, brand: str, subreddit: str, limit: int) -> List[Mention]:
        r = await client.get(
            f"{self.base_url}/r/{subreddit}/search.json",
            params={"q": brand, "limit": limit, "sort": "new", "restrict_sr": "on"},
        )
        r.raise_for_status()
        data = r.json()

        mentions: List[Mention] = []
        for child in (data.get("data") or {}).get("children") or []:
            post = child.get("data")
            if not post:
                continue

            title = clean_text(post.get("title"))
            body = clean_text(post.get("selftext"))
            permalink = post.get("permalink", "")
            link = f"https://reddit.com{permalink}" if permalink else post.get("url")
            post_subreddit = post.get("subreddit") or subreddit

            mentions.append(
                self.build_mention(
                    brand,
                    key=str(post.get("id") or link),
                    content=title,
                    scored_text=f"{title} {body or title}",
                    platform=f"r/{post_subreddit}",
                    url=link,
                    author=post.get("author"),
                    timestamp=post.get("created_utc"),
                    engagement=Engagement.from_dict(
                        {"likes": post.get("ups"), "comments": post.get("num_comments")}
                    ),
                    metadata={
                        "subreddit": post_subreddit,
                        "post_id": post.get("id"),
                        "score": post.get("score", 0),
                    },
                )
            )
        return mentions
