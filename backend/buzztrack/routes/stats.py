"""Brand and platform statistics endpoints."""

from typing import Dict, List

from fastapi import APIRouter

from buzztrack.models import KNOWN_SOURCES, Mention
from buzztrack.routes.dependencies import Brand, Registry, Store, Timeframe7d, Timeframe24h
from buzztrack.schemas import OverviewResponse, SourcesComparisonResponse, StatsResponse
from buzztrack.utils import dominant_sentiment, empty_sentiment_counts, round_half_up, timeframe_cutoff

router = APIRouter(prefix="/api/stats", tags=["stats"])

TOP_BRANDS = 5
TOP_SOURCE_BRANDS = 3


@router.get("", response_model=StatsResponse)
async def brand_stats(store: Store, brand: Brand, timeframe: Timeframe7d) -> dict:
    """Mention totals, sentiment and source counts for one brand."""
    return {
        "brand": brand,
        "timeframe": timeframe,
        "stats": store.get_stats(brand, timeframe),
    }


@router.get("/overview", response_model=OverviewResponse)
async def platform_overview(store: Store, registry: Registry, timeframe: Timeframe24h) -> dict:
    """Totals across every tracked brand.

    Sentiment is reported as whole percentages of all mentions; the top five
    brands are ranked by mention count.
    """
    start = timeframe_cutoff(timeframe)
    brands = registry.brands

    platform_breakdown = {source: 0 for source in KNOWN_SOURCES}
    sentiment_totals = empty_sentiment_counts()
    per_brand = []

    for brand in brands:
        mentions = store.get_all(brand=brand, start_date=start)
        counts = empty_sentiment_counts()
        engagement = 0
        for mention in mentions:
            counts[mention.sentiment] += 1
            platform_breakdown[mention.source] = platform_breakdown.get(mention.source, 0) + 1
            engagement += mention.total_engagement
        for label, count in counts.items():
            sentiment_totals[label] += count
        per_brand.append({
            "brand": brand,
            "mentions": len(mentions),
            "sentiment": dominant_sentiment(counts),
            "engagement": round_half_up(engagement / len(mentions)) if mentions else 0,
        })

    total = sum(item["mentions"] for item in per_brand)
    if total:
        sentiment_overview = {
            label: round_half_up(count / total * 100) for label, count in sentiment_totals.items()
        }
    else:
        sentiment_overview = sentiment_totals

    per_brand.sort(key=lambda item: item["mentions"], reverse=True)
    return {
        "overview": {
            "timeframe": timeframe,
            "total_mentions": total,
            "total_brands": len(brands),
            "platform_breakdown": platform_breakdown,
            "sentiment_overview": sentiment_overview,
            "top_performing_brands": per_brand[:TOP_BRANDS],
        }
    }


def _summarize_source(mentions_by_brand: Dict[str, List[Mention]]) -> dict:
    rows = []
    for brand, mentions in mentions_by_brand.items():
        count = len(mentions)
        rows.append({
            "brand": brand,
            "mentions": count,
            "avg_sentiment": sum(m.sentiment_score for m in mentions) / count if count else 0.0,
            "avg_engagement": sum(m.total_engagement for m in mentions) / count if count else 0.0,
        })

    brand_count = max(len(rows), 1)
    rows.sort(key=lambda row: row["mentions"], reverse=True)
    return {
        "total_mentions": sum(row["mentions"] for row in rows),
        "avg_sentiment": round(sum(row["avg_sentiment"] for row in rows) / brand_count, 3),
        "avg_engagement": round(sum(row["avg_engagement"] for row in rows) / brand_count, 1),
        "top_brands": [row["brand"] for row in rows[:TOP_SOURCE_BRANDS]],
    }


@router.get("/sources-comparison", response_model=SourcesComparisonResponse)
async def sources_comparison(store: Store, registry: Registry, timeframe: Timeframe24h) -> dict:
    """Per-source volume, average sentiment and engagement across tracked brands."""
    start = timeframe_cutoff(timeframe)
    comparison = {
        source: _summarize_source({
            brand: store.get_all(brand=brand, source=source, start_date=start) for brand in registry.brands
        })
        for source in KNOWN_SOURCES
    }
    return {"timeframe": timeframe, "comparison": comparison}
