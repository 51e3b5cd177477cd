"""RQ task entrypoints executed by background workers."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from rq import get_current_job

from ..schemas import JobLogCreate
from ..settings import CatalogSettings
from ..state import AppState

logger = logging.getLogger(__name__)


def execute_catalog_job(
    *,
    job_id: str,
    job_type: str,
    payload: dict[str, Any] | None,
    settings: dict[str, Any],
    worker_name: str,
) -> dict[str, Any]:
    """Background worker entrypoint for maintenance jobs."""

    resolved_settings = CatalogSettings.model_validate(settings)
    state = AppState(resolved_settings)
    job_store = state.job_store

    current_job = get_current_job()
    worker_id = worker_name
    if current_job and getattr(current_job, "worker_name", None):
        worker_id = current_job.worker_name

    job_store.mark_running(job_id, worker_id=worker_id)
    job_store.append_log(
        job_id,
        JobLogCreate(
            level="info",
            message=f"Executing {job_type} job",
            context={"payload": payload} if payload else None,
        ),
    )

    try:
        result = asyncio.run(_run(state, job_type, payload or {}))
        job_store.mark_completed(job_id)
        job_store.append_log(
            job_id, JobLogCreate(level="info", message="Job completed", context=result)
        )
    except Exception as exc:
        logger.exception("Job %s (%s) failed", job_id, job_type)
        job_store.mark_failed(job_id, error_message=str(exc))
        job_store.append_log(
            job_id,
            JobLogCreate(level="error", message="Job failed", context={"error": str(exc)}),
        )
        raise
    finally:
        state.engine.dispose()
    return result


async def _run(state: AppState, job_type: str, payload: dict[str, Any]) -> dict[str, Any]:
    try:
        if job_type == "cache_sweep":
            removed = await asyncio.to_thread(state.response_cache.sweep)
            return {"removed": removed}
        if job_type == "providers_refresh":
            return {"providers": await state.reference.refresh_providers()}
        if job_type == "genres_refresh":
            language = payload.get("language") or state.settings.tmdb_language
            added = await state.reference.fetch_and_store_genres(language, payload.get("api_key"))
            return {"language": language, "added": added}
        if job_type == "episodes_refresh":
            series_id = payload.get("series_id")
            if series_id is None:
                raise ValueError("episodes_refresh requires a series_id payload")
            episodes = await state.episodes.ensure_episodes(int(series_id), state.settings.tmdb_api_key)
            return {"series_id": int(series_id), "episodes": len(episodes)}
        raise ValueError(f"Unknown job type: {job_type}")
    finally:
        await state.client.aclose()
