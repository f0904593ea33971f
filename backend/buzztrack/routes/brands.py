"""Tracked brand management endpoints.

GET    /api/brands                 -- tracked brands
POST   /api/brands                 -- start tracking a brand
DELETE /api/brands/{brand}         -- stop tracking a brand
POST   /api/brands/collect/{brand} -- run one collection cycle now
GET    /api/brands/overview        -- 24h stats and spike flag per brand
"""

from fastapi import APIRouter, HTTPException

from buzztrack.routes.dependencies import Collector, Detector, Registry, Store
from buzztrack.schemas import (
    BrandChangeResponse,
    BrandListResponse,
    BrandOverviewResponse,
    BrandRequest,
    CollectionResponse,
)

router = APIRouter(prefix="/api/brands", tags=["brands"])


@router.get("", response_model=BrandListResponse)
async def list_brands(registry: Registry) -> dict:
    brands = registry.brands
    return {"count": len(brands), "brands": brands}


@router.post("", response_model=BrandChangeResponse)
async def add_brand(body: BrandRequest, registry: Registry) -> dict:
    brand = body.brand.strip()
    if not brand:
        raise HTTPException(status_code=400, detail="Brand name is required")
    if not registry.add(brand):
        raise HTTPException(status_code=400, detail="Brand already being tracked")
    return {"message": f"Started tracking {brand}", "tracked_brands": registry.brands}


@router.get("/overview", response_model=BrandOverviewResponse)
async def brands_overview(store: Store, detector: Detector, registry: Registry) -> dict:
    overview = []
    for brand in registry.brands:
        stats = store.get_stats(brand, "24h")
        overview.append({
            "brand": brand,
            "mentions24h": stats.total,
            "sentiment": stats.sentiment,
            "has_spike": detector.detect_spikes(brand).detected,
            "avg_engagement": stats.avg_engagement,
        })
    return {"overview": overview}


@router.post("/collect/{brand}", response_model=CollectionResponse)
async def collect_brand(brand: str, registry: Registry, collector: Collector) -> dict:
    """Trigger a collection cycle for a tracked brand and wait for it."""
    name = registry.resolve(brand)
    if name is None:
        raise HTTPException(status_code=404, detail="Brand not being tracked")

    result = await collector.collect_brand(name)
    return {
        "message": "Collection triggered",
        "brand": name,
        "fetched": result.fetched,
        "added": result.added,
        "duplicates": result.duplicates,
        "failed_sources": result.failed_sources,
        "spike_detected": result.spike is not None,
    }


@router.delete("/{brand}", response_model=BrandChangeResponse)
async def remove_brand(brand: str, registry: Registry) -> dict:
    name = registry.resolve(brand)
    if name is None or not registry.remove(name):
        raise HTTPException(status_code=404, detail="Brand not being tracked")
    return {"message": f"Stopped tracking {name}", "tracked_brands": registry.brands}
