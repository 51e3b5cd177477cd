"""Persistence for maintenance jobs and the events they log."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any
from uuid import uuid4

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..models import JobLogRecord, JobRecord, utc_now
from ..schemas import JobLogCreate, JobLogModel, JobModel


class JobNotFoundError(LookupError):
    """Raised when a status change targets a job id with no row."""


class JobStore:
    """Tracks queued, running and finished maintenance jobs."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def enqueue(self, job_type: str, payload: dict[str, Any] | None = None) -> JobModel:
        record = JobRecord(id=uuid4().hex, type=job_type, status="queued", payload=payload)
        with self._lock, Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return to_job_model(record)

    def list(
        self,
        *,
        limit: int = 50,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[JobModel]:
        """Newest jobs first, filtered by type and/or status."""

        statement = select(JobRecord)
        if job_type:
            statement = statement.where(JobRecord.type == job_type)
        if status:
            statement = statement.where(JobRecord.status == status)
        statement = statement.order_by(JobRecord.created_at.desc()).limit(limit)
        with Session(self._engine) as session:
            return [to_job_model(record) for record in session.exec(statement)]

    def get(self, job_id: str) -> JobModel | None:
        with Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            return to_job_model(record) if record else None

    def mark_running(self, job_id: str, *, worker_id: str | None = None) -> JobModel:
        def start(record: JobRecord, now: datetime) -> None:
            record.progress = 0.0
            if record.started_at is None:
                record.started_at = now
            record.worker_id = worker_id or record.worker_id

        return self._update(job_id, "running", start)

    def mark_completed(self, job_id: str) -> JobModel:
        def finish(record: JobRecord, now: datetime) -> None:
            record.progress = 1.0
            record.finished_at = now

        return self._update(job_id, "completed", finish)

    def mark_failed(self, job_id: str, *, error_message: str) -> JobModel:
        def fail(record: JobRecord, now: datetime) -> None:
            record.finished_at = now
            record.error_message = error_message

        return self._update(job_id, "failed", fail)

    def append_log(self, job_id: str, entry: JobLogCreate) -> JobLogModel:
        record = JobLogRecord(job_id=job_id, **entry.model_dump())
        with Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return JobLogModel.model_validate(record, from_attributes=True)

    def logs(self, job_id: str, *, limit: int = 100) -> list[JobLogModel]:
        statement = (
            select(JobLogRecord)
            .where(JobLogRecord.job_id == job_id)
            .order_by(JobLogRecord.created_at.asc(), JobLogRecord.id.asc())
            .limit(limit)
        )
        with Session(self._engine) as session:
            return [
                JobLogModel.model_validate(record, from_attributes=True)
                for record in session.exec(statement)
            ]

    def _update(self, job_id: str, status: str, apply) -> JobModel:
        with self._lock, Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None:
                raise JobNotFoundError(job_id)
            now = utc_now()
            record.status = status
            apply(record, now)
            record.updated_at = now
            session.add(record)
            session.commit()
            session.refresh(record)
            return to_job_model(record)


def to_job_model(record: JobRecord) -> JobModel:
    model = JobModel.model_validate(record, from_attributes=True)
    if record.started_at and record.finished_at:
        model.duration_seconds = (record.finished_at - record.started_at).total_seconds()
    return model
