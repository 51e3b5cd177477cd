"""Database models for the Catalog API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Index, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(**kwargs: Any) -> Any:
    return Field(sa_type=DateTime(timezone=True), **kwargs)


class CacheEntryRecord(SQLModel, table=True):
    """Cached upstream response doubling as a skip-to-page memo row."""

    __tablename__ = "cache"
    __table_args__ = (
        Index("ix_cache_query_shape", "provider_id", "query_type", "sort_by", "age_range", "skip"),
    )

    key: str = Field(primary_key=True)
    value: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    expiration: float = Field(index=True)
    page: int = Field(default=1)
    skip: int = Field(default=0)
    provider_id: str | None = Field(default=None)
    query_type: str | None = Field(default=None)
    sort_by: str | None = Field(default=None)
    age_range: str | None = Field(default=None)


class MetadataRecord(SQLModel, table=True):
    """Normalized title details written by the detail enricher."""

    __tablename__ = "metadata"

    id: int = Field(primary_key=True)
    media_type: str = Field(primary_key=True)
    title: str | None = None
    original_title: str | None = None
    overview: str | None = None
    release_date: str | None = None
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    original_language: str | None = None
    genres: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    runtime: str | None = None
    provider_id: str | None = None
    budget: int | None = None
    revenue: int | None = None
    homepage: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    tagline: str | None = None
    status: str | None = None
    belongs_to_collection: str | None = None
    production_companies: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    production_countries: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    spoken_languages: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    video_key: str | None = None
    video_name: str | None = None
    video_published_at: str | None = None
    directors: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    writers: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    main_cast: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    imdb_id: str | None = None
    updated_at: datetime = _timestamp(default_factory=utc_now, nullable=False)


class EpisodeRecord(SQLModel, table=True):
    """Episode details cached per show, season and episode number."""

    __tablename__ = "episodes"
    __table_args__ = (UniqueConstraint("show_id", "season_number", "episode_number"),)

    id: int = Field(primary_key=True)
    show_id: int = Field(index=True)
    season_number: int
    episode_number: int
    air_date: str | None = None
    name: str | None = None
    overview: str | None = None
    production_code: str | None = None
    runtime: int | None = None
    still_path: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None


class GenreRecord(SQLModel, table=True):
    """Localized genre name for a media type."""

    __tablename__ = "genres"

    genre_id: int = Field(primary_key=True)
    media_type: str = Field(primary_key=True)
    language: str = Field(primary_key=True)
    genre_name: str = Field(index=True)


class ProviderRecord(SQLModel, table=True):
    """Watch provider known to the upstream API."""

    __tablename__ = "providers"

    provider_id: int = Field(primary_key=True)
    provider_name: str
    logo_path: str | None = None


class JobRecord(SQLModel, table=True):
    """Maintenance job metadata persisted for orchestration."""

    __tablename__ = "catalog_jobs"

    id: str = Field(primary_key=True, index=True)
    type: str = Field(index=True)
    status: str = Field(default="queued", index=True)
    progress: float = Field(default=0.0)
    worker_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    started_at: datetime | None = _timestamp(default=None, index=True)
    finished_at: datetime | None = _timestamp(default=None, index=True)
    error_message: str | None = Field(default=None)
    created_at: datetime = _timestamp(default_factory=utc_now, nullable=False)
    updated_at: datetime = _timestamp(default_factory=utc_now, nullable=False)


class JobLogRecord(SQLModel, table=True):
    """Structured log event associated with a maintenance job."""

    __tablename__ = "catalog_job_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    message: str
    context: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    created_at: datetime = _timestamp(default_factory=utc_now, index=True)
