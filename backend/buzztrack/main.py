"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from buzztrack.config import Settings, configure_logging, get_settings
from buzztrack.core.sentiment import SentimentScorer
from buzztrack.core.spikes import SpikeDetector
from buzztrack.core.store import MentionStore
from buzztrack.core.topics import TopicAnalyzer
from buzztrack.routes import brands, debug, mentions, spikes, stats, topics
from buzztrack.services.collector import MentionCollector, build_fetchers
from buzztrack.services.notifier import RoomBroadcaster
from buzztrack.services.registry import BrandRegistry
from buzztrack.sources.common import MentionFetcher
from buzztrack.utils import now_utc

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def create_app(settings: Optional[Settings] = None, fetchers: Optional[Sequence[MentionFetcher]] = None) -> FastAPI:
    """
    Build the application and its collaborators.

    Args:
        settings: Settings to use, defaults to the environment
        fetchers: Source fetchers, defaults to those enabled by the settings

    Returns:
        Configured FastAPI app; collection starts on startup only when
        COLLECTION_ENABLED is set
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="BuzzTrack API",
        version="1.0.0",
        description="Brand mention monitoring with spike detection and topic analysis",
    )

    store = MentionStore(settings.STORE_MAX_SIZE)
    detector = SpikeDetector(
        store,
        threshold=settings.SPIKE_THRESHOLD,
        min_mentions=settings.SPIKE_MIN_MENTIONS,
        default_timeframe=settings.SPIKE_TIMEFRAME,
    )
    broadcaster = RoomBroadcaster()
    scorer: Optional[SentimentScorer] = None
    if fetchers is None:
        scorer = SentimentScorer(
            settings.SENTIMENT_PROVIDER,
            settings.SENTIMENT_POSITIVE_THRESHOLD,
            settings.SENTIMENT_NEGATIVE_THRESHOLD,
        )
        fetchers = build_fetchers(settings, scorer)
    collector = MentionCollector(store, detector, fetchers, broadcaster)
    registry = BrandRegistry(
        collector.collect_brand,
        interval_seconds=settings.COLLECTION_INTERVAL_SECONDS,
        brands=settings.tracked_brands,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.detector = detector
    app.state.analyzer = TopicAnalyzer(store)
    app.state.broadcaster = broadcaster
    app.state.collector = collector
    app.state.registry = registry
    app.state.sweep_task = None

    @app.on_event("startup")
    async def start_collection():
        """Start per-brand polling and the periodic spike sweep."""
        if scorer is not None and scorer.provider == "finbert":
            # Load the model off the event loop
            asyncio.get_running_loop().run_in_executor(None, scorer.warm_up)
        if not settings.COLLECTION_ENABLED:
            logger.info("Data collection disabled")
            return
        registry.start_all()
        app.state.sweep_task = asyncio.create_task(
            collector.run_sweeps(lambda: registry.brands, settings.SPIKE_SWEEP_SECONDS)
        )

    @app.on_event("shutdown")
    async def stop_collection():
        await registry.stop_all()
        sweep_task = app.state.sweep_task
        if sweep_task is not None:
            sweep_task.cancel()
            await asyncio.gather(sweep_task, return_exceptions=True)
            app.state.sweep_task = None

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error(422, message, details=jsonable_errors(errors))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "timestamp": now_utc().isoformat(),
            "trackedBrands": len(registry),
            "mentions": len(store),
            "subscriptions": broadcaster.subscriptions(),
        }

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket):
        await broadcaster.serve(websocket)

    app.include_router(mentions.router)
    app.include_router(stats.router)
    app.include_router(brands.router)
    app.include_router(spikes.router)
    app.include_router(topics.router)
    if not settings.is_production:
        app.include_router(debug.router)

    @app.get("/api/overview", include_in_schema=False)
    async def legacy_overview():
        return RedirectResponse(url="/api/brands/overview", status_code=308)

    return app


def jsonable_errors(errors) -> list:
    """Validation errors without the non-serializable ``ctx``/``input`` values."""
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")} for e in errors]


app = create_app()


if __name__ == "__main__":
    # For development
    import uvicorn
    uvicorn.run("buzztrack.main:app", host="0.0.0.0", port=get_settings().PORT, reload=True)
