"""Health endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_app_state, get_job_queue
from ..schemas import DispatcherStatus, HealthStatus, QueueHealthStatus
from ..services.queue import JobQueueService
from ..state import AppState

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(
    state: AppState = Depends(get_app_state),
    queue: JobQueueService = Depends(get_job_queue),
) -> HealthStatus:
    """Return service heartbeat information."""

    queue_status = QueueHealthStatus(status="ok")
    if not queue.ping():
        queue_status = QueueHealthStatus(status="error", detail="queue_unreachable")
    dispatcher = state.dispatcher
    return HealthStatus(
        queue=queue_status,
        dispatcher=DispatcherStatus(
            capacity=dispatcher.capacity,
            in_flight=dispatcher.in_flight,
            pending=dispatcher.pending,
        ),
        cache_write_failures=state.write_errors.total,
    )
