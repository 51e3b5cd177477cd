"""Persistence for per-episode records."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Iterable

from sqlalchemy import and_, delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..models import EpisodeRecord
from ..schemas import EpisodeModel
from .write_errors import CacheWriteErrors

logger = logging.getLogger(__name__)


class EpisodeStore:
    """Episode cache keyed by ``(show_id, season_number, episode_number)``."""

    def __init__(self, engine: Engine, *, errors: CacheWriteErrors | None = None) -> None:
        self._engine = engine
        self._errors = errors or CacheWriteErrors()
        self._lock = Lock()

    def list_for_show(self, show_id: int) -> list[EpisodeModel]:
        """Return every cached episode of a show ordered by season and episode."""

        statement = (
            select(EpisodeRecord)
            .where(EpisodeRecord.show_id == show_id)
            .order_by(EpisodeRecord.season_number.asc(), EpisodeRecord.episode_number.asc())
        )
        try:
            with Session(self._engine) as session:
                records: Iterable[EpisodeRecord] = session.exec(statement)
                episodes = [EpisodeModel.model_validate(record.model_dump()) for record in records]
        except SQLAlchemyError as exc:
            logger.error("Error fetching episodes for show_id %s: %s", show_id, exc)
            return []

        if episodes:
            logger.info("Cache hit for %d episodes of show_id %s", len(episodes), show_id)
        else:
            logger.info("Cache miss for episodes of show_id %s", show_id)
        return episodes

    def upsert_many(self, episodes: Iterable[EpisodeModel]) -> int:
        """Insert or replace episodes, replacing any row holding the same slot."""

        stored = 0
        for episode in episodes:
            try:
                with self._lock, Session(self._engine) as session:
                    session.exec(
                        delete(EpisodeRecord).where(
                            and_(
                                EpisodeRecord.show_id == episode.show_id,
                                EpisodeRecord.season_number == episode.season_number,
                                EpisodeRecord.episode_number == episode.episode_number,
                                EpisodeRecord.id != episode.id,
                            )
                        )
                    )
                    session.merge(EpisodeRecord(**episode.model_dump()))
                    session.commit()
            except SQLAlchemyError as exc:
                self._errors.report("episode", f"{episode.show_id}/{episode.id}", exc)
                continue
            stored += 1
        logger.debug("Stored %d episodes", stored)
        return stored
