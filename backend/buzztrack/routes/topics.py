"""Topic analysis endpoints."""

from typing import Optional

from fastapi import APIRouter, Query

from buzztrack.routes.dependencies import Analyzer, Brand, Registry, Timeframe24h
from buzztrack.schemas import (
    BrandTopicsResponse,
    ClustersResponse,
    ComparisonResponse,
    EmergingResponse,
    ThemesResponse,
    TimelineResponse,
    TrendingTopicsResponse,
)

router = APIRouter(prefix="/api/topics", tags=["topics"])

NO_MENTIONS = "No mentions available"


@router.get("/trending", response_model=TrendingTopicsResponse)
async def trending_topics(
    analyzer: Analyzer,
    registry: Registry,
    limit: int = Query(10, ge=1, le=50),
) -> dict:
    """Topics gaining momentum across all tracked brands in the last hour."""
    return {"trending_topics": analyzer.get_trending_topics(registry.brands, limit)}


@router.get("/brand/{brand}", response_model=BrandTopicsResponse)
async def brand_topics(
    brand: str,
    analyzer: Analyzer,
    timeframe: Timeframe24h,
    limit: int = Query(15, ge=1, le=50),
) -> dict:
    mentions = analyzer.brand_mentions(brand, timeframe)
    return {
        "brand": brand,
        "timeframe": timeframe,
        "topics": analyzer.extract_topics(mentions, limit),
        "total_mentions": len(mentions),
    }


@router.get("/clusters", response_model=ClustersResponse)
async def topic_clusters(analyzer: Analyzer, brand: Brand, timeframe: Timeframe24h) -> dict:
    mentions = analyzer.brand_mentions(brand, timeframe)
    return {"brand": brand, "timeframe": timeframe, "clusters": analyzer.cluster_by_topic(mentions)}


@router.get("/timeline", response_model=TimelineResponse)
async def topic_timeline(analyzer: Analyzer, brand: Brand, days: int = Query(7, ge=1, le=30)) -> dict:
    return {"brand": brand, "timeline": analyzer.get_topic_timeline(brand, days)}


@router.get("/comparison", response_model=ComparisonResponse)
async def topic_comparison(
    analyzer: Analyzer,
    registry: Registry,
    timeframe: Timeframe24h,
    brands: Optional[str] = Query(None, description="Comma-separated brands; defaults to tracked brands"),
) -> dict:
    if brands:
        brand_list = [b.strip() for b in brands.split(",") if b.strip()]
    else:
        brand_list = registry.brands
    return {
        "brands": brand_list,
        "timeframe": timeframe,
        "comparison": analyzer.compare_topics_across_brands(brand_list, timeframe),
    }


@router.get("/themes", response_model=ThemesResponse)
async def topic_themes(analyzer: Analyzer, brand: Brand, timeframe: Timeframe24h) -> dict:
    mentions = analyzer.brand_mentions(brand, timeframe)
    if not mentions:
        return {"brand": brand, "timeframe": timeframe, "themes": [], "message": NO_MENTIONS}
    return {"brand": brand, "timeframe": timeframe, "themes": analyzer.get_topic_themes(mentions)}


@router.get("/emerging", response_model=EmergingResponse)
async def emerging_topics(analyzer: Analyzer, brand: Brand, limit: int = Query(5, ge=1, le=50)) -> dict:
    mentions = analyzer.brand_mentions(brand)
    if not mentions:
        return {"brand": brand, "emerging": [], "message": NO_MENTIONS}
    return {"brand": brand, "emerging": analyzer.detect_emerging_topics(mentions, limit)}
