"""Serve one discover page across watch regions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..stores.response_cache import QueryShape
from .batch import BatchFetcher
from .enricher import normalize_media_type
from .fetcher import CachedFetcher

logger = logging.getLogger(__name__)

_KIDS_EXCLUDED_MOVIE_GENRES = "27,18,53,80,10752,37,10749,10768,10767,10766,10764,10763,9648,99,36"
_KIDS_MOVIE_FILTER = {
    "certification_country": "US",
    "certification": "G",
    "without_genres": _KIDS_EXCLUDED_MOVIE_GENRES,
}
_KIDS_TV_GENRE = "10762"
_ANIMATION_GENRE = "16"

AGE_RANGE_FILTERS: dict[str, dict[str, dict[str, Any]]] = {
    "0-5": {"movie": _KIDS_MOVIE_FILTER, "tv": {"with_genres": _KIDS_TV_GENRE}},
    "6-11": {"movie": _KIDS_MOVIE_FILTER, "tv": {"with_genres": _KIDS_TV_GENRE}},
    "12-15": {
        "movie": {"certification_country": "US", "certification": "PG"},
        "tv": {"with_genres": _ANIMATION_GENRE},
    },
    "16-17": {"movie": {"certification_country": "US", "certification": "PG-13"}, "tv": {}},
    "18+": {"movie": {"include_adult": True}, "tv": {}},
}


def age_range_params(age_range: str | None, media_type: str) -> dict[str, Any]:
    """Return the upstream filter parameters for an age range tag."""

    if not age_range:
        return {}
    filters = AGE_RANGE_FILTERS.get(age_range)
    if filters is None:
        logger.warning("Unknown ageRange: %s", age_range)
        return {}
    return dict(filters[media_type])


@dataclass(slots=True)
class DiscoverQuery:
    """Caller-facing catalog query."""

    content_type: str
    providers: list[str] = field(default_factory=list)
    sort_by: str = "popularity.desc"
    genre: int | str | None = None
    age_range: str | None = None
    api_key: str | None = None
    language: str | None = None
    skip: int = 0


def merge_unique(pages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Concatenate result lists, keeping the first occurrence of each identifier."""

    unique: dict[Any, dict[str, Any]] = {}
    for page in pages:
        for item in page.get("results") or []:
            unique.setdefault(item.get("id"), item)
    return list(unique.values())


class DiscoverOrchestrator:
    """Fan a discover query out over regions, merge, enrich and return one page."""

    def __init__(
        self,
        fetcher: CachedFetcher,
        batch_fetcher: BatchFetcher,
        *,
        regions: list[str],
    ) -> None:
        self._fetcher = fetcher
        self._batch_fetcher = batch_fetcher
        self._regions = regions

    async def discover(self, query: DiscoverQuery) -> dict[str, Any]:
        media_type = normalize_media_type(query.content_type)
        endpoint = f"/discover/{media_type}"
        provider_id = query.providers[0] if query.providers else None
        shape = QueryShape(
            provider_id=provider_id,
            query_type=query.content_type,
            sort_by=query.sort_by,
            age_range=query.age_range,
        )

        base_params: dict[str, Any] = {
            "with_watch_providers": ",".join(query.providers),
            "sort_by": query.sort_by,
            "language": query.language,
        }
        base_params.update(age_range_params(query.age_range, media_type))
        if query.genre:
            base_params["with_genres"] = query.genre

        regions: list[str | None] = list(self._regions) or [None]
        pages = await asyncio.gather(
            *(
                self._fetcher.fetch(
                    endpoint,
                    {**base_params, "watch_region": region},
                    api_key=query.api_key,
                    shape=shape,
                    skip=query.skip,
                )
                for region in regions
            )
        )

        unique_results = merge_unique(pages)
        await self._batch_fetcher.fetch(
            [item["id"] for item in unique_results], query.content_type, query.api_key
        )
        return {**pages[0], "results": unique_results}
