"""Collection diagnostics; only mounted outside production."""

from fastapi import APIRouter

from buzztrack.models import KNOWN_SOURCES
from buzztrack.routes.dependencies import Brand, Registry, Store
from buzztrack.schemas import CollectionStatusResponse
from buzztrack.utils import content_preview

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/collection-status", response_model=CollectionStatusResponse)
async def collection_status(store: Store, registry: Registry, brand: Brand) -> dict:
    mentions = store.debug_brand(brand)
    mentions.sort(key=lambda m: m.timestamp, reverse=True)

    sources = {source: 0 for source in KNOWN_SOURCES}
    for mention in mentions:
        sources[mention.source] = sources.get(mention.source, 0) + 1

    return {
        "brand": brand,
        "total_mentions": len(mentions),
        "sources": sources,
        "recent_mentions": [
            {
                "id": m.id,
                "source": m.source,
                "content": content_preview(m.content, ellipsis=False),
                "timestamp": m.timestamp,
                "sentiment": m.sentiment,
            }
            for m in mentions[:5]
        ],
        "tracked": registry.is_tracked(brand),
    }
