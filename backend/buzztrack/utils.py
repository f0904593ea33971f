"""
Shared utility functions for the brand monitoring service.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

import tldextract
from dateutil import parser as dateparser

logger = logging.getLogger(__name__)

TIMEFRAME_PATTERN = re.compile(r"^(\d+)([hdw])$")
TIMEFRAME_UNITS = {
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}
DEFAULT_TIMEFRAME = timedelta(hours=24)

# Bundled public suffix snapshot only; no list download at runtime
_domain_extractor = tldextract.TLDExtract(suffix_list_urls=())

SENTIMENT_LABELS = ("positive", "neutral", "negative")


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def content_preview(text: str | None, width: int = 100, ellipsis: bool = True) -> str:
    """
    Cut text to a preview of at most ``width`` characters.

    Args:
        text: Input text
        width: Maximum number of characters kept
        ellipsis: Append "..." when the text was cut

    Returns:
        Preview string
    """
    text = text or ""
    if len(text) <= width:
        return text
    return text[:width] + ("..." if ellipsis else "")


def extract_domain_from_url(url: str) -> str:
    """
    Extract the registered domain from a URL.

    Args:
        url: Full URL string

    Returns:
        Normalized domain name in lowercase, or "" when none can be found
    """
    if not url:
        return ""
    extracted = _domain_extractor(url)
    domain = f"{extracted.domain}.{extracted.suffix}" if extracted.suffix else extracted.domain
    return (domain or "").lower()


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: datetime | str | None) -> Optional[datetime]:
    """
    Parse an ISO-8601 (or otherwise dateutil-readable) instant.

    Args:
        value: datetime, date string or None

    Returns:
        UTC datetime, or None when the value is empty or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(dateparser.parse(str(value)))
    except (ValueError, OverflowError, TypeError):
        return None


def parse_timeframe(timeframe: str | None) -> timedelta:
    """
    Convert a timeframe string (``1h``, ``24h``, ``7d``, ``4w``) to a duration.

    Malformed strings fall back to 24 hours instead of raising.

    Args:
        timeframe: Timeframe string

    Returns:
        Duration as timedelta
    """
    match = TIMEFRAME_PATTERN.match(timeframe or "")
    if not match:
        logger.debug("Unrecognised timeframe %r, using 24h", timeframe)
        return DEFAULT_TIMEFRAME
    value, unit = match.groups()
    return int(value) * TIMEFRAME_UNITS[unit]


def timeframe_cutoff(timeframe: str | None, now: datetime | None = None) -> datetime:
    """Return the instant ``now - timeframe``."""
    return (now or now_utc()) - parse_timeframe(timeframe)


def floor_to_hour(value: datetime) -> datetime:
    """Truncate a datetime to the start of its hour."""
    return value.replace(minute=0, second=0, microsecond=0)


def empty_sentiment_counts() -> dict[str, int]:
    return {label: 0 for label in SENTIMENT_LABELS}


def dominant_sentiment(counts: Mapping[str, int] | None) -> str:
    """
    Pick the dominant label from sentiment counts.

    Ties resolve to positive, then negative, then neutral. Empty counts
    are neutral.

    Args:
        counts: Mapping of label to count

    Returns:
        "positive", "neutral" or "negative"
    """
    if not counts:
        return "neutral"
    positive = counts.get("positive", 0)
    neutral = counts.get("neutral", 0)
    negative = counts.get("negative", 0)
    highest = max(positive, neutral, negative)
    if highest == 0:
        return "neutral"
    if highest == positive:
        return "positive"
    if highest == negative:
        return "negative"
    return "neutral"


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    """Clamp a float to [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round a non-negative float to the nearest int, halves going up."""
    return int(value + 0.5)
