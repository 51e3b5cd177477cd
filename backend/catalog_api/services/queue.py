"""Redis-backed queue for catalog maintenance jobs."""
from __future__ import annotations

import logging

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

from ..schemas import JobLogCreate, JobModel, JobRunRequest
from ..settings import CatalogSettings
from ..stores.job_store import JobStore
from .tasks import execute_catalog_job

logger = logging.getLogger(__name__)

# Seconds before RQ kills a job; provider and episode refreshes fan out to TMDB.
JOB_TIMEOUTS = {
    "cache_sweep": 120,
    "providers_refresh": 600,
    "genres_refresh": 300,
    "episodes_refresh": 900,
}
RESULT_TTL_SECONDS = 3600


class JobQueueError(RuntimeError):
    """Raised when the queue cannot accept a job."""


def connect_redis(url: str) -> Redis:
    """Open a Redis connection; ``fakeredis://`` selects an in-memory server."""

    if not url.startswith("fakeredis://"):
        return Redis.from_url(url)
    try:
        import fakeredis
    except ModuleNotFoundError as exc:
        raise JobQueueError("fakeredis is required for fakeredis:// URLs") from exc
    return fakeredis.FakeRedis()


class JobQueueService:
    """Hands maintenance jobs to RQ and mirrors their state in the job table."""

    def __init__(self, settings: CatalogSettings) -> None:
        self._settings = settings
        self._connection = connect_redis(settings.redis_url)
        self._queue = Queue(settings.redis_queue_name, connection=self._connection)

    @property
    def queue(self) -> Queue:
        return self._queue

    @property
    def connection(self) -> Redis:
        return self._connection

    def ping(self) -> bool:
        try:
            return bool(self._connection.ping())
        except RedisError:
            return False

    def submit(self, job_store: JobStore, request: JobRunRequest) -> JobModel:
        """Record a queued job and push it to the worker queue.

        The job row exists before RQ sees it, so a worker never picks up an id the API
        cannot report on. A Redis failure marks the row failed and raises
        :class:`JobQueueError`.
        """

        job = job_store.enqueue(request.type, request.payload)
        job_store.append_log(
            job.id,
            JobLogCreate(
                message=f"Queued {request.type} on {self._queue.name}",
                context={"payload": request.payload} if request.payload else None,
            ),
        )

        try:
            self._queue.enqueue(
                execute_catalog_job,
                job_id=job.id,
                description=f"catalog:{request.type}",
                job_timeout=JOB_TIMEOUTS.get(request.type, 300),
                result_ttl=RESULT_TTL_SECONDS,
                kwargs={
                    "job_id": job.id,
                    "job_type": request.type,
                    "payload": request.payload,
                    "settings": self._settings.model_dump(),
                    "worker_name": self._settings.queue_worker_name,
                },
            )
        except RedisError as exc:
            logger.error("Could not queue %s job %s: %s", request.type, job.id, exc)
            job_store.append_log(
                job.id,
                JobLogCreate(level="error", message="Redis rejected the job", context={"error": str(exc)}),
            )
            job_store.mark_failed(job.id, error_message="queue_unavailable")
            raise JobQueueError("Maintenance queue is unavailable") from exc

        logger.info("Queued %s job %s", request.type, job.id)
        return job
