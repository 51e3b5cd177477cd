"""Persistence for normalized title details."""
from __future__ import annotations

import logging
from threading import Lock

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..models import MetadataRecord, utc_now
from ..schemas import MetadataModel
from .write_errors import CacheWriteErrors

logger = logging.getLogger(__name__)


class MetadataStore:
    """Per-title metadata cache without expiry; the latest enrichment wins."""

    def __init__(self, engine: Engine, *, errors: CacheWriteErrors | None = None) -> None:
        self._engine = engine
        self._errors = errors or CacheWriteErrors()
        self._lock = Lock()

    def get(self, content_id: int, media_type: str) -> MetadataModel | None:
        """Return the cached record, treating storage failures as a miss."""

        try:
            with Session(self._engine) as session:
                record = session.get(MetadataRecord, (content_id, media_type))
                model = _to_model(record) if record else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching metadata cache for ID %s: %s", content_id, exc)
            return None

        if model is None:
            logger.info("Cache miss for metadata ID %s", content_id)
        else:
            logger.info("Cache hit for metadata ID %s", content_id)
        return model

    def upsert(self, model: MetadataModel) -> None:
        """Insert or replace the record for ``(id, media_type)``."""

        record = MetadataRecord(**model.model_dump(), updated_at=utc_now())
        try:
            with self._lock, Session(self._engine) as session:
                session.merge(record)
                session.commit()
        except SQLAlchemyError as exc:
            self._errors.report("metadata", f"{model.media_type}/{model.id}", exc)
            return
        logger.info("Content details stored in metadata cache for ID %s", model.id)


def _to_model(record: MetadataRecord) -> MetadataModel:
    """Convert a metadata record into the shared model."""

    return MetadataModel.model_validate(record.model_dump(exclude={"updated_at"}))
