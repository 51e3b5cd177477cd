"""FastAPI dependencies for the Catalog API."""
import json
import logging

from fastapi import Depends, Request

from .schemas import CatalogConfig
from .services.queue import JobQueueService
from .state import AppState
from .stores.job_store import JobStore

logger = logging.getLogger(__name__)


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_job_store(app_state: AppState = Depends(get_app_state)) -> JobStore:
    return app_state.job_store


def get_job_queue(request: Request) -> JobQueueService:
    """Return the maintenance queue attached to the application."""
    return request.app.state.job_queue


def parse_config(raw: str | None) -> CatalogConfig:
    """Decode the JSON configuration path segment; invalid input yields defaults."""

    if not raw:
        return CatalogConfig()
    try:
        return CatalogConfig.model_validate(json.loads(raw))
    except ValueError as exc:
        logger.error("Error parsing configParameters: %s", exc)
        return CatalogConfig()
