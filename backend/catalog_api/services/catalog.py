"""Catalog request handling: id parsing, discover call and meta previews."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any

from ..schemas import CatalogConfig
from ..stores.metadata_store import MetadataStore
from ..stores.reference_store import GenreStore
from .discover import DiscoverOrchestrator, DiscoverQuery
from .enricher import normalize_media_type
from .posters import PosterService
from .presentation import to_catalog_meta

logger = logging.getLogger(__name__)

CATALOG_ID_PATTERN = re.compile(r"^tmdb-discover-(movies|series)(-new|-popular)?-(\d+)$")
_EXTRA_SPLIT = re.compile(r"&(?=(?:skip|genre|search)=)")

_NEW_SORT = {"movies": "primary_release_date.desc", "series": "first_air_date.desc"}


class InvalidCatalogIdError(ValueError):
    """Raised when a catalog id does not name a provider discover catalog."""


@dataclass(slots=True, frozen=True)
class CatalogId:
    catalog_type: str
    provider_id: str
    is_new: bool

    @property
    def sort_by(self) -> str:
        return _NEW_SORT[self.catalog_type] if self.is_new else "popularity.desc"


def parse_catalog_id(catalog_id: str) -> CatalogId:
    match = CATALOG_ID_PATTERN.match(catalog_id)
    if not match:
        raise InvalidCatalogIdError(f"Invalid catalog id: {catalog_id}")
    return CatalogId(
        catalog_type=match.group(1),
        provider_id=str(int(match.group(3))),
        is_new=match.group(2) == "-new",
    )


def parse_extra(extra: str | None) -> tuple[int, str | None]:
    """Return ``(skip, genre_name)`` from a decoded Stremio extra segment.

    Pairs are split only before known keys, so genre names may contain ``&``.
    """

    if not extra:
        return 0, None
    values = dict(part.partition("=")[::2] for part in _EXTRA_SPLIT.split(extra))
    try:
        skip = max(int(values.get("skip") or 0), 0)
    except ValueError:
        skip = 0
    return skip, values.get("genre") or None


@dataclass(slots=True)
class CatalogPage:
    metas: list[dict[str, Any]]
    posters_to_cache: dict[str, str]


class CatalogService:
    """Serve one page of a provider catalog as Stremio meta previews."""

    def __init__(
        self,
        discover: DiscoverOrchestrator,
        metadata: MetadataStore,
        genres: GenreStore,
        posters: PosterService,
        *,
        default_language: str,
    ) -> None:
        self._discover = discover
        self._metadata = metadata
        self._genres = genres
        self._posters = posters
        self._default_language = default_language

    async def catalog(
        self,
        content_type: str,
        catalog_id: str,
        config: CatalogConfig,
        extra: str | None = None,
    ) -> CatalogPage:
        parsed = parse_catalog_id(catalog_id)
        skip, genre_name = parse_extra(extra)
        # the catalog id decides what is queried and presented
        discover_type = "series" if parsed.catalog_type == "series" else "movie"
        media_type = normalize_media_type(discover_type)
        if normalize_media_type(content_type) != media_type:
            logger.warning("Catalog %s requested as type %s", catalog_id, content_type)
        language = config.language or self._default_language

        genre_id = None
        if genre_name:
            genre_id = await asyncio.to_thread(self._genres.find_id, genre_name, media_type)
            if genre_id is None:
                logger.warning("Genre not found for name: %s", genre_name)

        logger.debug(
            "Discover %s provider=%s sort=%s genre=%s skip=%s",
            parsed.catalog_type,
            parsed.provider_id,
            parsed.sort_by,
            genre_id,
            skip,
        )
        results = await self._discover.discover(
            DiscoverQuery(
                content_type=discover_type,
                providers=[parsed.provider_id],
                sort_by=parsed.sort_by,
                genre=genre_id,
                age_range=config.age_range,
                api_key=config.tmdb_api_key,
                language=language,
                skip=skip,
            )
        )

        with_posters = [item for item in results.get("results") or [] if item.get("poster_path")]
        previews = await asyncio.gather(
            *(
                self._preview(item, parsed.catalog_type, media_type, language, config.rpdb_api_key)
                for item in with_posters
            )
        )

        posters_to_cache: dict[str, str] = {}
        metas = []
        for meta, rpdb_url, content_id in previews:
            metas.append(meta)
            if rpdb_url:
                posters_to_cache.setdefault(f"poster:{content_id}", rpdb_url)
        return CatalogPage(metas=metas, posters_to_cache=posters_to_cache)

    async def _preview(
        self,
        content: dict[str, Any],
        catalog_type: str,
        media_type: str,
        language: str,
        rpdb_api_key: str | None,
    ) -> tuple[dict[str, Any], str | None, int]:
        poster_url, rpdb_url = await self._posters.poster_url(
            content, catalog_type, language, rpdb_api_key
        )
        metadata = await asyncio.to_thread(self._metadata.get, content["id"], media_type)
        return to_catalog_meta(content, catalog_type, poster_url, metadata), rpdb_url, content["id"]
