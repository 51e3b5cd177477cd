"""Cached RPDB poster files."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..dependencies import get_app_state
from ..state import AppState

router = APIRouter(tags=["posters"])


@router.get("/poster/{name}.jpg")
def get_poster(name: str, state: AppState = Depends(get_app_state)) -> FileResponse:
    path = state.posters.cached_file(name)
    if path is None:
        raise HTTPException(status_code=404, detail="Poster not found")
    return FileResponse(path, media_type="image/jpeg")
