"""Response cache table and the skip-to-page memo stored alongside it.

Both concerns share the ``cache`` table. :meth:`ResponseCacheStore.get_fresh` is the
freshness view and ignores expired rows; :meth:`ResponseCacheStore.exact_memo` and
:meth:`ResponseCacheStore.latest_memo` are the pagination view and never look at
``expiration``. Rows only disappear through :meth:`ResponseCacheStore.sweep`.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..models import CacheEntryRecord
from .write_errors import CacheWriteErrors

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class QueryShape:
    """Identifies one pagination sequence: provider, content type, sort order and age range."""

    provider_id: str | None
    query_type: str | None
    sort_by: str | None
    age_range: str | None


@dataclass(slots=True, frozen=True)
class MemoRow:
    """Pagination view of a cache row."""

    page: int
    skip: int


class ResponseCacheStore:
    """TTL cache of raw upstream responses keyed by request URL."""

    def __init__(
        self,
        engine: Engine,
        *,
        ttl_seconds: float,
        errors: CacheWriteErrors | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._engine = engine
        self._ttl_seconds = ttl_seconds
        self._errors = errors or CacheWriteErrors()
        self._clock = clock
        self._lock = Lock()

    def get_fresh(self, key: str) -> dict[str, Any] | None:
        """Return the cached response when present and not expired."""

        try:
            with Session(self._engine) as session:
                record = session.get(CacheEntryRecord, key)
                value = record.value if record else None
                expiration = record.expiration if record else None
        except SQLAlchemyError as exc:
            logger.error("Error fetching cache for key %s: %s", key, exc)
            return None

        if value is not None and expiration is not None and expiration > self._clock():
            logger.info("Cache hit for key %s", key)
            return value
        logger.info("Cache miss for key %s", key)
        return None

    def put(
        self,
        key: str,
        value: dict[str, Any],
        *,
        page: int = 1,
        skip: int = 0,
        shape: QueryShape | None = None,
    ) -> None:
        """Insert or replace the row for ``key``; failures are reported, never raised."""

        record = CacheEntryRecord(
            key=key,
            value=value,
            expiration=self._clock() + self._ttl_seconds,
            page=page,
            skip=skip,
            provider_id=shape.provider_id if shape else None,
            query_type=shape.query_type if shape else None,
            sort_by=shape.sort_by if shape else None,
            age_range=shape.age_range if shape else None,
        )
        try:
            with self._lock, Session(self._engine) as session:
                session.merge(record)
                session.commit()
        except SQLAlchemyError as exc:
            self._errors.report("response", key, exc)
            return
        logger.debug("Cache set for %s with page=%s skip=%s shape=%s", key, page, skip, shape)

    def exact_memo(self, shape: QueryShape, skip: int) -> MemoRow | None:
        """Return the memo row recorded for exactly ``skip`` within ``shape``."""

        statement = (
            _shape_filter(select(CacheEntryRecord), shape)
            .where(CacheEntryRecord.skip == skip)
            .order_by(CacheEntryRecord.skip.desc())
            .limit(1)
        )
        return self._first_memo(statement)

    def latest_memo(self, shape: QueryShape) -> MemoRow | None:
        """Return the memo row with the greatest skip recorded for ``shape``."""

        statement = (
            _shape_filter(select(CacheEntryRecord), shape)
            .order_by(CacheEntryRecord.skip.desc())
            .limit(1)
        )
        return self._first_memo(statement)

    def sweep(self, now: float | None = None) -> int:
        """Delete rows whose expiration has passed and return how many were removed."""

        cutoff = self._clock() if now is None else now
        with self._lock, Session(self._engine) as session:
            result = session.exec(delete(CacheEntryRecord).where(CacheEntryRecord.expiration <= cutoff))
            session.commit()
            removed = result.rowcount or 0
        logger.info("Cache cleanup removed %d expired entries", removed)
        return removed

    def _first_memo(self, statement) -> MemoRow | None:
        with Session(self._engine) as session:
            record = session.exec(statement).first()
            return MemoRow(page=record.page, skip=record.skip) if record else None


def _shape_filter(statement, shape: QueryShape):
    """Constrain ``statement`` to rows of ``shape``, matching NULL columns with IS NULL."""

    for column, value in (
        (CacheEntryRecord.provider_id, shape.provider_id),
        (CacheEntryRecord.query_type, shape.query_type),
        (CacheEntryRecord.sort_by, shape.sort_by),
        (CacheEntryRecord.age_range, shape.age_range),
    ):
        statement = statement.where(column.is_(None) if value is None else column == value)
    return statement
