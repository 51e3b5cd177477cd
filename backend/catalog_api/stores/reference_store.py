"""Genre and provider tables shared by the manifest, catalog and refresh jobs."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Iterable

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ..models import GenreRecord, ProviderRecord
from ..schemas import ProviderModel

logger = logging.getLogger(__name__)


class GenreStore:
    """Localized genre names per media type."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def has_language(self, language: str) -> bool:
        statement = select(GenreRecord.genre_id).where(GenreRecord.language == language).limit(1)
        with Session(self._engine) as session:
            return session.exec(statement).first() is not None

    def names(self, media_type: str, language: str) -> list[str]:
        statement = (
            select(GenreRecord.genre_name)
            .where(GenreRecord.media_type == media_type)
            .where(GenreRecord.language == language)
            .order_by(GenreRecord.genre_name)
        )
        with Session(self._engine) as session:
            return list(session.exec(statement))

    def find_id(self, genre_name: str, media_type: str) -> int | None:
        """Resolve a genre name to its identifier in any stored language."""

        statement = (
            select(GenreRecord.genre_id)
            .where(GenreRecord.genre_name == genre_name)
            .where(GenreRecord.media_type == media_type)
            .limit(1)
        )
        with Session(self._engine) as session:
            return session.exec(statement).first()

    def insert_missing(self, genres: Iterable[dict[str, Any]], media_type: str, language: str) -> int:
        """Insert genres that are not stored yet, in one transaction."""

        added = 0
        with self._lock, Session(self._engine) as session:
            for genre in genres:
                key = (genre["id"], media_type, language)
                if session.get(GenreRecord, key) is not None:
                    continue
                session.add(
                    GenreRecord(
                        genre_id=genre["id"],
                        media_type=media_type,
                        language=language,
                        genre_name=genre["name"],
                    )
                )
                added += 1
            session.commit()
        logger.info("Genres stored for %s (%s): %d new", media_type, language, added)
        return added


class ProviderStore:
    """Watch providers merged across regions."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def list(self) -> list[ProviderModel]:
        with Session(self._engine) as session:
            records: Iterable[ProviderRecord] = session.exec(
                select(ProviderRecord).order_by(ProviderRecord.provider_name)
            )
            return [_to_model(record) for record in records]

    def get(self, provider_id: int) -> ProviderModel | None:
        with Session(self._engine) as session:
            record = session.get(ProviderRecord, provider_id)
            return _to_model(record) if record else None

    def upsert_many(self, providers: Iterable[dict[str, Any]]) -> int:
        count = 0
        with self._lock, Session(self._engine) as session:
            for provider in providers:
                session.merge(
                    ProviderRecord(
                        provider_id=provider["provider_id"],
                        provider_name=provider["provider_name"],
                        logo_path=provider.get("logo_path"),
                    )
                )
                count += 1
            session.commit()
        return count


def _to_model(record: ProviderRecord) -> ProviderModel:
    return ProviderModel(
        id=record.provider_id,
        display_name=record.provider_name,
        logo_path=record.logo_path,
    )
