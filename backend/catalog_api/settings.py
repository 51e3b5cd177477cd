"""Runtime configuration for the Catalog API."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.paths import default_poster_directory


class CatalogSettings(BaseSettings):
    """Environment-aware settings for the catalog service."""

    tmdb_base_url: str = Field(
        "https://api.themoviedb.org/3", description="Base URL of the TMDB REST API."
    )
    tmdb_bearer_token: str | None = Field(
        default=None, description="Bearer token sent when a request carries no API key override."
    )
    tmdb_api_key: str | None = Field(
        default=None, description="Fallback TMDB API key used by maintenance tasks."
    )
    tmdb_language: str = Field(default="en-US", description="Default upstream language.")
    tmdb_watch_regions: str = Field(
        default="", description="Comma-separated watch regions queried by discover."
    )
    tmdb_fetch_trailer_without_language_fallback: bool = Field(
        default=False,
        description="Retry the video list without a language when no localized trailer exists.",
    )
    request_concurrency: int = Field(
        default=45, ge=1, description="Maximum number of upstream calls in flight."
    )
    request_timeout: float = Field(default=10.0, gt=0, description="Upstream timeout in seconds.")
    enrichment_batch_size: int = Field(
        default=20, ge=1, description="Number of titles enriched per dispatcher cohort."
    )
    coalesce_requests: bool = Field(
        default=False,
        description="Share one upstream call between concurrent identical cache misses.",
    )
    cache_catalog_duration_days: float = Field(
        default=3, gt=0, description="Lifetime of cached catalog responses."
    )
    cache_poster_duration_days: float = Field(
        default=3, gt=0, description="Lifetime of cached poster files."
    )
    cache_sweep_interval_hours: float = Field(
        default=24, ge=0, description="Interval between expired-row sweeps, 0 disables."
    )
    refresh_providers_on_startup: bool = Field(
        default=True, description="Refresh the provider table when the API starts."
    )
    base_url: str = Field(
        default="http://localhost:7000", description="Public URL used for cached poster links."
    )
    poster_directory: str = Field(
        default_factory=default_poster_directory,
        description="Directory holding cached poster files.",
    )
    database_url: str = Field(
        default="sqlite:///./data/catalog.db",
        description="Connection URL for the catalog SQLite database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis-backed maintenance queue.",
    )
    redis_queue_name: str = Field(
        default="catalog-maintenance",
        description="RQ queue name used for maintenance jobs.",
    )
    queue_worker_name: str = Field(
        default="catalog-worker",
        description="Identifier used when reporting job worker executions.",
    )
    log_level: str = Field(default="INFO", description="Root logging level.")

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def watch_regions(self) -> list[str]:
        """Return the configured watch regions as a list."""

        return [region.strip() for region in self.tmdb_watch_regions.split(",") if region.strip()]

    @property
    def catalog_ttl_seconds(self) -> float:
        return self.cache_catalog_duration_days * 24 * 60 * 60

    @property
    def poster_ttl_seconds(self) -> float:
        return self.cache_poster_duration_days * 24 * 60 * 60
