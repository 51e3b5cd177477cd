"""Stremio catalog endpoints."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..dependencies import get_app_state, parse_config
from ..services.catalog import InvalidCatalogIdError
from ..services.tmdb_client import UpstreamError
from ..state import AppState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


async def _catalog(
    state: AppState,
    background: BackgroundTasks,
    content_type: str,
    catalog_id: str,
    config: str | None,
    extra: str | None,
) -> dict:
    logger.debug(
        "Received parameters: id=%s, type=%s, extra=%s", catalog_id, content_type, extra
    )
    try:
        page = await state.catalog.catalog(content_type, catalog_id, parse_config(config), extra)
    except InvalidCatalogIdError as exc:
        raise HTTPException(status_code=400, detail="Invalid catalog id") from exc
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if page.posters_to_cache:
        background.add_task(state.posters.store_many, page.posters_to_cache)
    return {"metas": page.metas}


@router.get("/catalog/{content_type}/{catalog_id}.json")
async def get_catalog(
    content_type: str,
    catalog_id: str,
    background: BackgroundTasks,
    state: AppState = Depends(get_app_state),
) -> dict:
    return await _catalog(state, background, content_type, catalog_id, None, None)


@router.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
async def get_catalog_with_extra(
    content_type: str,
    catalog_id: str,
    extra: str,
    background: BackgroundTasks,
    state: AppState = Depends(get_app_state),
) -> dict:
    return await _catalog(state, background, content_type, catalog_id, None, extra)


@router.get("/{config}/catalog/{content_type}/{catalog_id}.json")
async def get_configured_catalog(
    config: str,
    content_type: str,
    catalog_id: str,
    background: BackgroundTasks,
    state: AppState = Depends(get_app_state),
) -> dict:
    return await _catalog(state, background, content_type, catalog_id, config, None)


@router.get("/{config}/catalog/{content_type}/{catalog_id}/{extra}.json")
async def get_configured_catalog_with_extra(
    config: str,
    content_type: str,
    catalog_id: str,
    extra: str,
    background: BackgroundTasks,
    state: AppState = Depends(get_app_state),
) -> dict:
    """Return one page of a provider catalog for a configured addon install."""

    return await _catalog(state, background, content_type, catalog_id, config, extra)
