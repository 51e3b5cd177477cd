"""Application factory for the Catalog API."""
import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import catalog, health, jobs, manifest, meta, posters, providers
from .services.queue import JobQueueService
from .services.tmdb_client import UpstreamError
from .settings import CatalogSettings
from .state import AppState

logger = logging.getLogger(__name__)


async def _sweep_periodically(state: AppState, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await asyncio.to_thread(state.response_cache.sweep)
        logger.info("Removed %d expired cache entries", removed)


def create_app(
    settings: CatalogSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or CatalogSettings()
    app_state = AppState(resolved_settings, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = None
        if resolved_settings.refresh_providers_on_startup:
            try:
                await app_state.reference.refresh_providers()
            except UpstreamError as exc:
                logger.error("Error during providers update: %s", exc)
        if resolved_settings.cache_sweep_interval_hours > 0:
            sweeper = asyncio.create_task(
                _sweep_periodically(app_state, resolved_settings.cache_sweep_interval_hours * 3600)
            )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
            await app_state.aclose()

    app = FastAPI(title="Streaming Catalog API", version="0.1.0", lifespan=lifespan)
    app.state.app_state = app_state
    app.state.settings = resolved_settings
    app.state.job_queue = JobQueueService(resolved_settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        health.router,
        providers.router,
        posters.router,
        jobs.router,
        manifest.router,
        catalog.router,
        meta.router,
    ):
        app.include_router(router)

    return app
