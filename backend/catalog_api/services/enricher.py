"""Fetch and normalize full title details into the metadata cache."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..schemas import MetadataModel
from ..stores.metadata_store import MetadataStore
from .tmdb_client import TmdbClient

logger = logging.getLogger(__name__)

MAIN_CAST_SIZE = 3


def normalize_media_type(content_type: str) -> str:
    """Map caller content types (series, movie, movies) to TMDB media types."""

    return "tv" if content_type in ("series", "tv") else "movie"


def format_runtime(minutes: int | None) -> str | None:
    """Render a runtime in minutes as ``2h``, ``2h05`` or ``45min``."""

    if not minutes:
        return None
    hours, remaining = divmod(int(minutes), 60)
    if hours and not remaining:
        return f"{hours}h"
    if hours:
        return f"{hours}h{remaining:02d}"
    return f"{remaining}min"


def select_trailer(videos: list[dict[str, Any]] | None) -> dict[str, Any] | None:
    """Pick the official, earliest-published trailer."""

    trailers = [video for video in videos or [] if video.get("type") == "Trailer"]
    if not trailers:
        return None
    return min(
        trailers,
        key=lambda video: (not video.get("official", False), video.get("published_at") or ""),
    )


def extract_credits(credits: dict[str, Any] | None) -> tuple[list[str], list[str], list[str]]:
    """Return director names, writer names and the first cast members."""

    credits = credits or {}
    crew = credits.get("crew") or []
    cast = credits.get("cast") or []
    directors = [person["name"] for person in crew if person.get("job") == "Director"]
    writers = [person["name"] for person in crew if person.get("job") == "Writer"]
    main_cast = [person["name"] for person in cast[:MAIN_CAST_SIZE]]
    return directors, writers, main_cast


def _names(items: list[dict[str, Any]] | None) -> list[str]:
    return [item["name"] for item in items or [] if item.get("name")]


def normalize_details(data: dict[str, Any], media_type: str) -> MetadataModel:
    """Flatten a TMDB details payload into a metadata record."""

    trailer = select_trailer((data.get("videos") or {}).get("results"))
    directors, writers, main_cast = extract_credits(data.get("credits"))
    episode_run_time = data.get("episode_run_time") or []
    runtime = data.get("runtime") or (episode_run_time[0] if episode_run_time else None)
    collection = data.get("belongs_to_collection")

    return MetadataModel(
        id=data["id"],
        media_type=media_type,
        title=data.get("title") or data.get("name"),
        original_title=data.get("original_title") or data.get("original_name"),
        overview=data.get("overview"),
        release_date=data.get("release_date") or data.get("first_air_date"),
        popularity=data.get("popularity"),
        vote_average=data.get("vote_average"),
        vote_count=data.get("vote_count"),
        original_language=data.get("original_language"),
        genres=_names(data.get("genres")),
        runtime=format_runtime(runtime),
        budget=data.get("budget"),
        revenue=data.get("revenue"),
        homepage=data.get("homepage"),
        poster_path=data.get("poster_path"),
        backdrop_path=data.get("backdrop_path"),
        tagline=data.get("tagline"),
        status=data.get("status"),
        belongs_to_collection=collection.get("name") if collection else None,
        production_companies=_names(data.get("production_companies")),
        production_countries=_names(data.get("production_countries")),
        spoken_languages=_names(data.get("spoken_languages")),
        video_key=trailer.get("key") if trailer else None,
        video_name=trailer.get("name") if trailer else None,
        video_published_at=trailer.get("published_at") if trailer else None,
        directors=directors,
        writers=writers,
        main_cast=main_cast,
        imdb_id=(data.get("external_ids") or {}).get("imdb_id"),
    )


class DetailEnricher:
    """Enrich one title with credits, trailer and external identifiers."""

    def __init__(
        self,
        client: TmdbClient,
        store: MetadataStore,
        *,
        language: str,
        trailer_language_fallback: bool = False,
    ) -> None:
        self._client = client
        self._store = store
        self._language = language
        self._trailer_language_fallback = trailer_language_fallback

    async def enrich(
        self, content_id: int, content_type: str, api_key: str | None = None
    ) -> dict[str, Any]:
        """Return the cached record on a hit, otherwise fetch, persist and return the raw payload."""

        media_type = normalize_media_type(content_type)
        cached = await asyncio.to_thread(self._store.get, content_id, media_type)
        if cached is not None:
            return cached.model_dump()

        endpoint = f"/{media_type}/{content_id}"
        params: dict[str, Any] = {
            "append_to_response": "videos,credits,external_ids",
            "language": self._language,
            "api_key": api_key,
        }
        logger.debug("Fetching content details for ID: %s, Type: %s", content_id, media_type)
        data = await self._client.get_json(self._client.build_url(endpoint, params), api_key=api_key)

        videos = (data.get("videos") or {}).get("results")
        if self._trailer_language_fallback and select_trailer(videos) is None:
            logger.info("No trailer found with language, retrying without language for ID: %s", content_id)
            fallback_url = self._client.build_url(
                endpoint, {"append_to_response": "videos", "api_key": api_key}
            )
            fallback = await self._client.get_json(fallback_url, api_key=api_key)
            data["videos"] = fallback.get("videos") or {"results": []}

        await asyncio.to_thread(self._store.upsert, normalize_details(data, media_type))
        return data
