"""
Application configuration with environment variable support.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(value: str, separator: str = ",") -> list[str]:
    """Split a separated environment value into trimmed, non-empty items."""
    return [item.strip() for item in (value or "").split(separator) if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API keys
    NEWS_API_KEY: str = ""
    X_BEARER_TOKEN: str = ""

    # Sources
    REDDIT_BASE_URL: str = "https://www.reddit.com"
    REDDIT_USER_AGENT: str = "BuzzTrack/1.0 (Brand Monitoring Tool)"
    REDDIT_SUBREDDITS: str = "all,technology,business,news"
    NEWS_API_BASE_URL: str = "https://newsapi.org/v2"
    TWITTER_BASE_URL: str = "https://api.twitter.com/2"
    TWITTER_ENABLED: bool = False
    HTTP_TIMEOUT_SECONDS: float = 20.0

    # Collection
    TRACKED_BRANDS: str = "Nike,Apple,Tesla"
    COLLECTION_ENABLED: bool = True
    COLLECTION_INTERVAL_SECONDS: float = 60.0
    SPIKE_SWEEP_SECONDS: float = 300.0

    # Spike detection
    SPIKE_THRESHOLD: float = 2.5
    SPIKE_MIN_MENTIONS: int = 5
    SPIKE_TIMEFRAME: str = "7d"

    # Mention store
    STORE_MAX_SIZE: int = 15000

    # Sentiment analysis ("lexicon" or "finbert")
    SENTIMENT_PROVIDER: str = "lexicon"
    SENTIMENT_POSITIVE_THRESHOLD: float = 0.2
    SENTIMENT_NEGATIVE_THRESHOLD: float = -0.2

    # Server
    CORS_ALLOW_ORIGINS: str = "*"
    ENVIRONMENT: str = "development"
    PORT: int = 5000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def tracked_brands(self) -> list[str]:
        return _split_list(self.TRACKED_BRANDS)

    @property
    def reddit_subreddits(self) -> list[str]:
        return _split_list(self.REDDIT_SUBREDDITS)

    @property
    def cors_allow_origins(self) -> list[str]:
        return _split_list(self.CORS_ALLOW_ORIGINS) or ["*"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Configure root logging from LOG_LEVEL / LOG_FORMAT."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )
