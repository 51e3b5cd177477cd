"""Addon manifest endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_app_state, parse_config
from ..services.tmdb_client import UpstreamError
from ..state import AppState

router = APIRouter(tags=["manifest"])


@router.get("/manifest.json")
async def get_manifest(state: AppState = Depends(get_app_state)) -> dict:
    """Return the manifest of an unconfigured install, which lists no catalogs."""

    return await state.reference.manifest(parse_config(None))


@router.get("/{config}/manifest.json")
async def get_configured_manifest(config: str, state: AppState = Depends(get_app_state)) -> dict:
    """Return the manifest with Popular and New catalogs for every configured provider."""

    try:
        return await state.reference.manifest(parse_config(config))
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
