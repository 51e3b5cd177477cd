"""Poster URL selection and the on-disk RPDB poster cache."""
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import httpx

from ..utils.paths import ensure_directory, safe_file_stem
from .presentation import image_url

logger = logging.getLogger(__name__)

RPDB_BASE_URL = "https://api.ratingposterdb.com"
_FREE_RPDB_TIERS = ("t0", "t1")


def rpdb_poster_url(catalog_type: str, content_id: int, language: str, rpdb_api_key: str) -> str:
    """Return the RPDB poster URL; free tiers do not accept a language."""

    tier = rpdb_api_key.split("-")[0]
    lang = language.split("-")[0]
    url = (
        f"{RPDB_BASE_URL}/{rpdb_api_key}/tmdb/poster-default/"
        f"{catalog_type}-{content_id}.jpg?fallback=true"
    )
    return url if tier in _FREE_RPDB_TIERS else f"{url}&lang={lang}"


class PosterService:
    """Resolve poster URLs and keep a file cache of RPDB posters."""

    def __init__(
        self,
        directory: str,
        *,
        base_url: str,
        ttl_seconds: float,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._directory = ensure_directory(directory)
        self._base_url = base_url.rstrip("/")
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout
        self._transport = transport

    def path_for(self, name: str) -> Path:
        return self._directory / f"{safe_file_stem(name)}.jpg"

    def cached_url(self, poster_id: str) -> str | None:
        """Return the served URL of a fresh cached poster, if any."""

        path = self.path_for(poster_id)
        try:
            modified = path.stat().st_mtime
        except FileNotFoundError:
            return None
        if time.time() - modified >= self._ttl_seconds:
            logger.debug("Cache miss or expired for poster id %s", poster_id)
            return None
        return f"{self._base_url}/poster/{path.name}"

    def cached_file(self, name: str) -> Path | None:
        path = self.path_for(name)
        return path if path.is_file() else None

    async def poster_url(
        self,
        content: dict[str, Any],
        catalog_type: str,
        language: str,
        rpdb_api_key: str | None,
    ) -> tuple[str, str | None]:
        """Return the poster URL for a title and the RPDB URL to cache, if one should be."""

        tmdb_url = image_url(content.get("poster_path"), "w500") or ""
        if not rpdb_api_key:
            return tmdb_url, None

        poster_id = f"poster:{content['id']}"
        cached = await asyncio.to_thread(self.cached_url, poster_id)
        if cached:
            return cached, None

        rpdb_url = rpdb_poster_url(catalog_type, content["id"], language, rpdb_api_key)
        try:
            async with self._http() as client:
                response = await client.head(rpdb_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Error fetching RPDB poster: %s. Falling back to TMDB poster.", exc)
            return tmdb_url, None
        return rpdb_url, rpdb_url

    async def store(self, poster_id: str, url: str) -> None:
        """Download ``url`` into the cache; failures are logged."""

        path = self.path_for(poster_id)
        try:
            async with self._http() as client:
                response = await client.get(url)
            response.raise_for_status()
            await asyncio.to_thread(path.write_bytes, response.content)
        except (httpx.HTTPError, OSError) as exc:
            logger.error("Error caching poster id %s from URL %s: %s", poster_id, url, exc)
            return
        logger.debug("Poster id %s cached at %s", poster_id, path)

    async def store_many(self, posters: dict[str, str]) -> None:
        for poster_id, url in posters.items():
            await self.store(poster_id, url)

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport, follow_redirects=True)
