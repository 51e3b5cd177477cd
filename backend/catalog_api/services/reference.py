"""Provider and genre reference tables, and the manifest built from them."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from ..schemas import CatalogConfig
from ..stores.reference_store import GenreStore, ProviderStore
from .presentation import build_manifest
from .tmdb_client import TmdbClient

logger = logging.getLogger(__name__)


def merge_providers(providers: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Collapse provider entries by name, keeping the first identifier seen."""

    merged: dict[str, dict[str, Any]] = {}
    for provider in providers:
        name = provider.get("provider_name")
        if not name or name in merged:
            continue
        merged[name] = {
            "provider_id": provider["provider_id"],
            "provider_name": name,
            "logo_path": provider.get("logo_path"),
        }
    return list(merged.values())


class ReferenceDataService:
    """Refresh watch providers and localized genres from TMDB."""

    def __init__(
        self,
        client: TmdbClient,
        genres: GenreStore,
        providers: ProviderStore,
        *,
        regions: list[str],
        language: str,
        api_key: str | None = None,
    ) -> None:
        self._client = client
        self._genres = genres
        self._providers = providers
        self._regions = regions
        self._language = language
        self._api_key = api_key

    async def refresh_providers(self) -> int:
        """Fetch movie and series providers for every region and upsert the merged list."""

        async def for_region(region: str) -> list[dict[str, Any]]:
            movie_data, tv_data = await asyncio.gather(
                self._get("/watch/providers/movie", {"watch_region": region}),
                self._get("/watch/providers/tv", {"watch_region": region}),
            )
            return [*(movie_data.get("results") or []), *(tv_data.get("results") or [])]

        per_region = await asyncio.gather(*(for_region(region) for region in self._regions))
        combined = merge_providers(item for batch in per_region for item in batch)
        count = await asyncio.to_thread(self._providers.upsert_many, combined)
        logger.info("Providers update completed: %d providers", count)
        return count

    async def fetch_and_store_genres(self, language: str, api_key: str | None = None) -> int:
        """Fetch movie and series genre lists for ``language`` and store the new ones."""

        added = 0
        for media_type in ("movie", "tv"):
            data = await self._get(
                f"/genre/{media_type}/list", {"language": language}, api_key=api_key
            )
            added += await asyncio.to_thread(
                self._genres.insert_missing, data.get("genres") or [], media_type, language
            )
        logger.info("Genres fetched and stored for %s", language)
        return added

    async def manifest(self, config: CatalogConfig) -> dict[str, Any]:
        """Build the manifest for a user configuration, loading genres on first use."""

        if not config.providers:
            return build_manifest([], [], [], config.age_range)

        language = config.language or self._language
        if not await asyncio.to_thread(self._genres.has_language, language):
            logger.debug("Fetching genres for language: %s", language)
            await self.fetch_and_store_genres(language, config.tmdb_api_key)

        movie_genres, series_genres = await asyncio.gather(
            asyncio.to_thread(self._genres.names, "movie", language),
            asyncio.to_thread(self._genres.names, "tv", language),
        )

        providers = []
        for raw_id in config.providers:
            try:
                provider = await asyncio.to_thread(self._providers.get, int(raw_id))
            except ValueError:
                logger.warning("Ignoring invalid provider id: %s", raw_id)
                continue
            if provider is not None:
                providers.append(provider.model_dump())
        return build_manifest(providers, movie_genres, series_genres, config.age_range)

    async def _get(
        self, endpoint: str, params: dict[str, Any], *, api_key: str | None = None
    ) -> dict[str, Any]:
        api_key = api_key or self._api_key
        url = self._client.build_url(endpoint, {**params, "api_key": api_key})
        return await self._client.get_json(url, api_key=api_key)
