"""Response-cached TMDB fetches with skip-based pagination."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from ..stores.response_cache import QueryShape, ResponseCacheStore
from .cursor import CursorResolver
from .tmdb_client import TmdbClient, redact, strip_api_key

logger = logging.getLogger(__name__)


def cache_key(url: str, shape: QueryShape | None, skip: int) -> str:
    """Key a response by its credential-free URL plus, for paginated queries, shape and skip.

    Age ranges can map to identical upstream URLs, so the shape keeps each
    ``(skip, shape)`` pair on its own memo row.
    """

    key = strip_api_key(url)
    if shape is None or not shape.provider_id:
        return key
    return (
        f"{key}#skip={skip};provider={shape.provider_id};type={shape.query_type};"
        f"sort={shape.sort_by};age={shape.age_range}"
    )


class CachedFetcher:
    """Fetch TMDB resources through the response cache, resolving pages from skips."""

    def __init__(
        self,
        client: TmdbClient,
        cache: ResponseCacheStore,
        resolver: CursorResolver,
        *,
        default_language: str,
        coalesce: bool = False,
    ) -> None:
        self._client = client
        self._cache = cache
        self._resolver = resolver
        self._default_language = default_language
        self._coalesce = coalesce
        self._inflight: dict[str, asyncio.Future[dict[str, Any]]] = {}

    async def fetch(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        *,
        api_key: str | None = None,
        shape: QueryShape | None = None,
        skip: int = 0,
    ) -> dict[str, Any]:
        """Return the upstream payload for ``endpoint``, served from cache when fresh.

        When ``shape`` names a provider the page comes from the cursor resolver, otherwise
        page 1 is requested. Upstream failures propagate; cache failures do not.
        """

        page = 1
        if shape is not None and shape.provider_id:
            page = await self._resolver.resolve(shape, skip)

        query: dict[str, Any] = dict(params or {})
        query["page"] = page
        query["language"] = query.get("language") or self._default_language
        if api_key:
            query["api_key"] = api_key

        url = self._client.build_url(endpoint, query)
        key = cache_key(url, shape, skip)
        logger.debug("Request URL: %s", redact(url))

        cached = await asyncio.to_thread(self._cache.get_fresh, key)
        if cached is not None:
            return cached

        if not self._coalesce:
            return await self._fetch_and_store(url, key, api_key, page, skip, shape)

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight request for %s", key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._fetch_and_store(url, key, api_key, page, skip, shape))
        self._inflight[key] = task
        task.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        url: str,
        key: str,
        api_key: str | None,
        page: int,
        skip: int,
        shape: QueryShape | None,
    ) -> dict[str, Any]:
        data = await self._client.get_json(url, api_key=api_key)
        await asyncio.to_thread(self._cache.put, key, data, page=page, skip=skip, shape=shape)
        return data
