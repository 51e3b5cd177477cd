"""Stremio meta endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_app_state
from ..services.tmdb_client import UpstreamError
from ..state import AppState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meta"])


async def _meta(state: AppState, content_type: str, content_id: str) -> dict:
    logger.info("Received metadata request for type: %s, id: %s", content_type, content_id)
    try:
        meta = await state.meta.build_meta(content_type, content_id)
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"meta": meta or {}}


@router.get("/meta/{content_type}/{content_id}.json")
async def get_meta(
    content_type: str, content_id: str, state: AppState = Depends(get_app_state)
) -> dict:
    """Return the meta object of a title already listed by a catalog page."""

    return await _meta(state, content_type, content_id)


@router.get("/{config}/meta/{content_type}/{content_id}.json")
async def get_configured_meta(
    config: str, content_type: str, content_id: str, state: AppState = Depends(get_app_state)
) -> dict:
    return await _meta(state, content_type, content_id)
