"""Pydantic models exposed by the Catalog API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueueHealthStatus(BaseModel):
    """Represents Redis queue connectivity status."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the queue is unavailable."
    )


class DispatcherStatus(BaseModel):
    """Snapshot of the shared upstream request dispatcher."""

    capacity: int = Field(description="Maximum number of upstream calls in flight.")
    in_flight: int = Field(default=0, description="Units currently running.")
    pending: int = Field(default=0, description="Units waiting for a free slot.")


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    queue: QueueHealthStatus = Field(
        default_factory=QueueHealthStatus,
        description="Health information for the maintenance job queue.",
    )
    dispatcher: DispatcherStatus
    cache_write_failures: int = Field(
        default=0, description="Cache writes that failed since the process started."
    )


class CatalogConfig(BaseModel):
    """Per-user addon configuration carried in the request path."""

    model_config = ConfigDict(populate_by_name=True)

    providers: list[str] = Field(default_factory=list)
    language: str | None = Field(default=None)
    tmdb_api_key: str | None = Field(default=None, alias="tmdbApiKey")
    rpdb_api_key: str | None = Field(default=None, alias="rpdbApiKey")
    age_range: str | None = Field(default=None, alias="ageRange")


class MetadataModel(BaseModel):
    """Normalized per-title record held by the metadata cache."""

    id: int
    media_type: Literal["movie", "tv"]
    title: str | None = None
    original_title: str | None = None
    overview: str | None = None
    release_date: str | None = None
    popularity: float | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    original_language: str | None = None
    genres: list[str] = Field(default_factory=list)
    runtime: str | None = Field(default=None, description="Compact runtime such as 2h05.")
    provider_id: str | None = None
    budget: int | None = None
    revenue: int | None = None
    homepage: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    tagline: str | None = None
    status: str | None = None
    belongs_to_collection: str | None = None
    production_companies: list[str] = Field(default_factory=list)
    production_countries: list[str] = Field(default_factory=list)
    spoken_languages: list[str] = Field(default_factory=list)
    video_key: str | None = None
    video_name: str | None = None
    video_published_at: str | None = None
    directors: list[str] = Field(default_factory=list)
    writers: list[str] = Field(default_factory=list)
    main_cast: list[str] = Field(default_factory=list)
    imdb_id: str | None = None


class EpisodeModel(BaseModel):
    """Episode record held by the episode cache."""

    id: int
    show_id: int
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


class ProviderModel(BaseModel):
    """Watch provider exposed to the configuration page."""

    id: int
    display_name: str
    logo_path: str | None = None


JobType = Literal["cache_sweep", "providers_refresh", "genres_refresh", "episodes_refresh"]
JobStatus = Literal["queued", "running", "completed", "failed"]


class JobModel(BaseModel):
    """Represents a maintenance job."""

    id: str
    type: str
    status: JobStatus
    progress: float = Field(ge=0, le=1)
    worker_id: str | None = Field(
        default=None, description="Identifier for the worker processing the job."
    )
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the runner."
    )
    created_at: datetime = Field(description="Timestamp when the job record was created.")
    updated_at: datetime = Field(description="Timestamp when the job record was last updated.")
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    duration_seconds: float | None = Field(
        default=None,
        description="Execution duration calculated from started and finished timestamps.",
    )


class JobLogCreate(BaseModel):
    """Payload used to append a new job log entry."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Severity level of the log entry."
    )
    message: str = Field(..., description="Human-readable log message.")
    context: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured context payload for the log entry.",
    )


class JobLogModel(JobLogCreate):
    """Represents a persisted job log entry."""

    id: int
    job_id: str
    created_at: datetime


class JobRunRequest(BaseModel):
    """Payload used to enqueue a maintenance job."""

    type: JobType = Field(..., description="Maintenance job type, e.g. cache_sweep.")
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the job runner."
    )

    @model_validator(mode="after")
    def _check_payload(self) -> "JobRunRequest":
        payload = self.payload or {}
        if self.type == "episodes_refresh":
            series_id = payload.get("series_id")
            if isinstance(series_id, bool) or not isinstance(series_id, int):
                raise ValueError("episodes_refresh needs an integer series_id in its payload")
        if self.type == "genres_refresh" and not isinstance(payload.get("language", ""), str):
            raise ValueError("genres_refresh language must be a string")
        return self
