"""
Shared fixtures for the BuzzTrack test suite.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from buzztrack.core.store import MentionStore
from buzztrack.models import Engagement, Mention

NOW = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)

_counter = itertools.count()


def build_mention(
    brand="Acme",
    content="Acme released something",
    source="reddit",
    *,
    age=timedelta(minutes=5),
    now=NOW,
    url=None,
    sentiment="neutral",
    score=0.0,
    likes=0,
    comments=0,
    shares=0,
    platform="r/test",
):
    """Mention ``age`` before ``now`` with a unique URL unless one is given."""
    n = next(_counter)
    return Mention(
        brand=brand,
        source=source,
        content=content,
        platform=platform,
        url=url if url is not None else f"https://example.com/{brand.lower()}/{n}",
        sentiment=sentiment,
        sentiment_score=score,
        timestamp=now - age,
        engagement=Engagement(likes=likes, comments=comments, shares=shares),
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_mention():
    return build_mention


@pytest.fixture
def store():
    return MentionStore(max_size=1000)
