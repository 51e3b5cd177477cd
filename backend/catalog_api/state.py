"""Shared state container for the Catalog API."""
from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.engine import Engine

from .db import create_engine_from_settings, init_database
from .services.batch import BatchFetcher
from .services.catalog import CatalogService
from .services.cursor import CursorResolver
from .services.discover import DiscoverOrchestrator
from .services.dispatcher import RequestDispatcher
from .services.enricher import DetailEnricher
from .services.episodes import EpisodeService
from .services.fetcher import CachedFetcher
from .services.meta import MetaService
from .services.posters import PosterService
from .services.reference import ReferenceDataService
from .services.tmdb_client import TmdbClient
from .settings import CatalogSettings
from .stores.episode_store import EpisodeStore
from .stores.job_store import JobStore
from .stores.metadata_store import MetadataStore
from .stores.reference_store import GenreStore, ProviderStore
from .stores.response_cache import ResponseCacheStore
from .stores.write_errors import CacheWriteErrors


@dataclass(slots=True)
class AppState:
    """Stores, the shared dispatcher and the services built on top of them."""

    settings: CatalogSettings
    engine: Engine
    write_errors: CacheWriteErrors
    response_cache: ResponseCacheStore
    metadata_store: MetadataStore
    episode_store: EpisodeStore
    genre_store: GenreStore
    provider_store: ProviderStore
    job_store: JobStore
    dispatcher: RequestDispatcher
    client: TmdbClient
    fetcher: CachedFetcher
    enricher: DetailEnricher
    batch_fetcher: BatchFetcher
    discover: DiscoverOrchestrator
    episodes: EpisodeService
    meta: MetaService
    posters: PosterService
    reference: ReferenceDataService
    catalog: CatalogService

    def __init__(
        self,
        settings: CatalogSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine)

        self.write_errors = CacheWriteErrors()
        self.response_cache = ResponseCacheStore(
            self.engine, ttl_seconds=settings.catalog_ttl_seconds, errors=self.write_errors
        )
        self.metadata_store = MetadataStore(self.engine, errors=self.write_errors)
        self.episode_store = EpisodeStore(self.engine, errors=self.write_errors)
        self.genre_store = GenreStore(self.engine)
        self.provider_store = ProviderStore(self.engine)
        self.job_store = JobStore(self.engine)

        self.dispatcher = RequestDispatcher(capacity=settings.request_concurrency)
        self.client = TmdbClient(
            self.dispatcher,
            base_url=settings.tmdb_base_url,
            bearer_token=settings.tmdb_bearer_token,
            timeout=settings.request_timeout,
            transport=transport,
        )
        self.fetcher = CachedFetcher(
            self.client,
            self.response_cache,
            CursorResolver(self.response_cache),
            default_language=settings.tmdb_language,
            coalesce=settings.coalesce_requests,
        )
        self.enricher = DetailEnricher(
            self.client,
            self.metadata_store,
            language=settings.tmdb_language,
            trailer_language_fallback=settings.tmdb_fetch_trailer_without_language_fallback,
        )
        self.batch_fetcher = BatchFetcher(
            self.dispatcher, self.enricher, batch_size=settings.enrichment_batch_size
        )
        self.discover = DiscoverOrchestrator(
            self.fetcher, self.batch_fetcher, regions=settings.watch_regions
        )
        self.episodes = EpisodeService(self.fetcher, self.episode_store)
        self.meta = MetaService(self.metadata_store, self.episodes, api_key=settings.tmdb_api_key)
        self.posters = PosterService(
            settings.poster_directory,
            base_url=settings.base_url,
            ttl_seconds=settings.poster_ttl_seconds,
            timeout=settings.request_timeout,
            transport=transport,
        )
        self.reference = ReferenceDataService(
            self.client,
            self.genre_store,
            self.provider_store,
            regions=settings.watch_regions,
            language=settings.tmdb_language,
            api_key=settings.tmdb_api_key,
        )
        self.catalog = CatalogService(
            self.discover,
            self.metadata_store,
            self.genre_store,
            self.posters,
            default_language=settings.tmdb_language,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
        self.engine.dispose()
