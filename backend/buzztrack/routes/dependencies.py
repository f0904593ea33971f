"""Request-scoped access to the objects created in ``create_app``."""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, Request

from buzztrack.config import Settings
from buzztrack.core.spikes import SpikeDetector
from buzztrack.core.store import MentionStore
from buzztrack.core.topics import TopicAnalyzer
from buzztrack.services.collector import MentionCollector
from buzztrack.services.registry import BrandRegistry
from buzztrack.utils import TIMEFRAME_PATTERN

TIMEFRAME_REGEX = TIMEFRAME_PATTERN.pattern


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> MentionStore:
    return request.app.state.store


def get_detector(request: Request) -> SpikeDetector:
    return request.app.state.detector


def get_analyzer(request: Request) -> TopicAnalyzer:
    return request.app.state.analyzer


def get_registry(request: Request) -> BrandRegistry:
    return request.app.state.registry


def get_collector(request: Request) -> MentionCollector:
    return request.app.state.collector


def required_brand(brand: Optional[str] = Query(None, max_length=100)) -> str:
    """Brand query parameter; missing or blank is a 400."""
    if not brand or not brand.strip():
        raise HTTPException(status_code=400, detail="Brand parameter is required")
    return brand.strip()


def timeframe_query(default: str):
    """Timeframe query parameter validated against ``<digits><h|d|w>``."""

    def dependency(
        timeframe: str = Query(default, pattern=TIMEFRAME_REGEX, description="e.g. 1h, 24h, 7d, 4w"),
    ) -> str:
        return timeframe

    return dependency


AppSettings = Annotated[Settings, Depends(get_settings)]
Store = Annotated[MentionStore, Depends(get_store)]
Detector = Annotated[SpikeDetector, Depends(get_detector)]
Analyzer = Annotated[TopicAnalyzer, Depends(get_analyzer)]
Registry = Annotated[BrandRegistry, Depends(get_registry)]
Collector = Annotated[MentionCollector, Depends(get_collector)]
Brand = Annotated[str, Depends(required_brand)]
Timeframe24h = Annotated[str, Depends(timeframe_query("24h"))]
Timeframe7d = Annotated[str, Depends(timeframe_query("7d"))]
