"""Mention listing endpoints.

GET /api/mentions      -- filtered mentions, newest first
GET /api/mentions/{id} -- a single mention
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from buzztrack.routes.dependencies import Store
from buzztrack.schemas import MentionListResponse, MentionResponse

router = APIRouter(prefix="/api/mentions", tags=["mentions"])


@router.get("", response_model=MentionListResponse)
async def list_mentions(
    store: Store,
    brand: Optional[str] = Query(None, max_length=100),
    sentiment: Optional[Literal["positive", "neutral", "negative"]] = Query(None),
    source: Optional[str] = Query(None, max_length=32),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=1000),
) -> dict:
    mentions = store.get_all(
        brand=brand,
        source=source,
        sentiment=sentiment,
        start_date=start_date,
        end_date=end_date,
    )[:limit]
    return {"count": len(mentions), "mentions": mentions}


@router.get("/{mention_id}", response_model=MentionResponse)
async def get_mention(mention_id: str, store: Store) -> dict:
    mention = store.get_by_id(mention_id)
    if mention is None:
        raise HTTPException(status_code=404, detail="Mention not found")
    return {"mention": mention}
