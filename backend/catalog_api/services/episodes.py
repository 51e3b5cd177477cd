"""Keep the episode cache of a series up to date, one season at a time."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..schemas import EpisodeModel
from ..stores.episode_store import EpisodeStore
from .fetcher import CachedFetcher

logger = logging.getLogger(__name__)


def _to_episode(series_id: int, payload: dict[str, Any]) -> EpisodeModel:
    return EpisodeModel(
        id=payload["id"],
        show_id=payload.get("show_id") or series_id,
        season_number=payload["season_number"],
        episode_number=payload["episode_number"],
        air_date=payload.get("air_date"),
        name=payload.get("name"),
        overview=payload.get("overview"),
        production_code=payload.get("production_code"),
        runtime=payload.get("runtime"),
        still_path=payload.get("still_path"),
        vote_average=payload.get("vote_average"),
        vote_count=payload.get("vote_count"),
    )


class EpisodeService:
    """Fetch seasons through the response cache and store their episodes."""

    def __init__(self, fetcher: CachedFetcher, store: EpisodeStore) -> None:
        self._fetcher = fetcher
        self._store = store

    async def fetch_and_store(
        self, series_id: int, api_key: str | None = None, season: int | None = None
    ) -> dict[str, Any]:
        """Store one season, or every season when ``season`` is omitted."""

        series = await self._fetcher.fetch(f"/tv/{series_id}", api_key=api_key)
        seasons = [season] if season else range(1, (series.get("number_of_seasons") or 0) + 1)

        for season_number in seasons:
            details = await self._fetcher.fetch(
                f"/tv/{series_id}/season/{season_number}", api_key=api_key
            )
            episodes = [_to_episode(series_id, item) for item in details.get("episodes") or []]
            await asyncio.to_thread(self._store.upsert_many, episodes)
        return series

    async def ensure_episodes(self, series_id: int, api_key: str | None = None) -> list[EpisodeModel]:
        """Fill missing seasons, or refresh the latest one when none are missing."""

        cached = await asyncio.to_thread(self._store.list_for_show, series_id)
        if not cached:
            logger.info("Episode cache empty for series %s, fetching all seasons", series_id)
            await self.fetch_and_store(series_id, api_key)
            return await asyncio.to_thread(self._store.list_for_show, series_id)

        seasons_in_cache = {episode.season_number for episode in cached}
        series = await self._fetcher.fetch(f"/tv/{series_id}", api_key=api_key)
        season_count = series.get("number_of_seasons") or 0
        missing = [number for number in range(1, season_count + 1) if number not in seasons_in_cache]

        if missing:
            logger.info("Fetching missing seasons: %s", ", ".join(map(str, missing)))
            for season_number in missing:
                await self.fetch_and_store(series_id, api_key, season_number)
        elif season_count:
            logger.info("Fetching only the latest season: Season %s", season_count)
            await self.fetch_and_store(series_id, api_key, season_count)

        return await asyncio.to_thread(self._store.list_for_show, series_id)
