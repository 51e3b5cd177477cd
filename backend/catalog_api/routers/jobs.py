"""Catalog maintenance job endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_job_queue, get_job_store
from ..schemas import JobLogModel, JobModel, JobRunRequest, JobStatus, JobType
from ..services.queue import JobQueueError, JobQueueService
from ..stores.job_store import JobStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _existing_job(job_id: str, store: JobStore) -> JobModel:
    job = store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/run", response_model=JobModel, status_code=201)
def queue_maintenance_job(
    request: JobRunRequest,
    store: JobStore = Depends(get_job_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Queue a cache sweep, reference-data refresh or episode refresh."""

    try:
        return queue.submit(store, request)
    except JobQueueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("", response_model=list[JobModel])
def recent_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    job_type: JobType | None = Query(default=None, alias="type"),
    status: JobStatus | None = Query(default=None),
    store: JobStore = Depends(get_job_store),
) -> list[JobModel]:
    return store.list(limit=limit, job_type=job_type, status=status)


@router.get("/{job_id}", response_model=JobModel)
def job_detail(job_id: str, store: JobStore = Depends(get_job_store)) -> JobModel:
    return _existing_job(job_id, store)


@router.get("/{job_id}/logs", response_model=list[JobLogModel])
def job_events(
    job_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    store: JobStore = Depends(get_job_store),
) -> list[JobLogModel]:
    """Return the job's log events, oldest first."""

    _existing_job(job_id, store)
    return store.logs(job_id, limit=limit)
