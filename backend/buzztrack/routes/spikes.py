"""Spike status and history endpoints."""

from typing import Optional

from fastapi import APIRouter, Query

from buzztrack.routes.dependencies import TIMEFRAME_REGEX, Brand, Detector
from buzztrack.schemas import SpikeHistoryResponse, SpikeResponse

router = APIRouter(prefix="/api/spikes", tags=["spikes"])


@router.get("", response_model=SpikeResponse)
async def spike_status(
    detector: Detector,
    brand: Brand,
    timeframe: Optional[str] = Query(None, pattern=TIMEFRAME_REGEX),
) -> dict:
    """Current window vs previous window; defaults to the detector's timeframe."""
    return {"spike": detector.detect_spikes(brand, timeframe)}


@router.get("/history", response_model=SpikeHistoryResponse)
async def spike_history(detector: Detector, brand: Brand, days: int = Query(7, ge=1, le=30)) -> dict:
    return {"history": detector.get_spike_history(brand, days)}
