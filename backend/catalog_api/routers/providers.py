"""Watch provider listing."""
import asyncio

from fastapi import APIRouter, Depends

from ..dependencies import get_app_state
from ..schemas import ProviderModel
from ..state import AppState

router = APIRouter(tags=["providers"])


@router.get("/providers", response_model=list[ProviderModel])
async def list_providers(state: AppState = Depends(get_app_state)) -> list[ProviderModel]:
    return await asyncio.to_thread(state.provider_store.list)
