"""FastAPI application factory for the feature toggle service."""

from __future__ import annotations

import logging

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient

from .api.routes import register_routes
from .config import Settings, get_settings
from .guard import register_guard
from .jobs.scheduler import ToggleMetricsScheduler
from .middleware import AdminRateLimitMiddleware
from .services.feature_toggles import FeatureToggleService
from .services.metrics import register_metrics
from .services.store import MongoToggleStore
from .utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory used by uvicorn entrypoint."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="TeamMove Feature Toggles API",
        version="0.1.0",
        docs_url="/docs" if settings.app_env != "prod" else None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        AdminRateLimitMiddleware,
        limit=settings.admin_rate_limit,
        window_seconds=settings.admin_rate_limit_window_seconds,
    )

    register_metrics(app)
    register_guard(app)
    register_routes(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup() -> None:
        LOGGER.info("Starting feature toggle service")
        mongo_client: AsyncIOMotorClient = AsyncIOMotorClient(settings.mongodb_uri)
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        store = MongoToggleStore(
            mongo_client[settings.mongodb_db][settings.feature_toggle_collection]
        )
        try:
            await store.ensure_indexes()
        except Exception:
            LOGGER.warning("Could not ensure feature toggle indexes", exc_info=True)

        service = FeatureToggleService(
            store, ttl_seconds=settings.feature_toggle_cache_ttl_seconds
        )
        if settings.seed_defaults_on_startup:
            await service.initialize()

        app.state.settings = settings
        app.state.mongo_client = mongo_client
        app.state.redis = redis_client
        app.state.feature_toggle_service = service

        scheduler = ToggleMetricsScheduler(settings, store)
        scheduler.start()
        app.state.metrics_scheduler = scheduler

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        LOGGER.info("Stopping feature toggle service")
        scheduler: ToggleMetricsScheduler | None = getattr(
            app.state, "metrics_scheduler", None
        )
        if scheduler:
            scheduler.shutdown()

        redis_client: redis.Redis = app.state.redis
        await redis_client.aclose()

        mongo_client: AsyncIOMotorClient = app.state.mongo_client
        mongo_client.close()

    return app
