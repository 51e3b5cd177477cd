"""Translate a caller's skip offset into the upstream page number."""
from __future__ import annotations

import asyncio
import logging

from ..stores.response_cache import QueryShape, ResponseCacheStore

logger = logging.getLogger(__name__)


class CursorResolver:
    """Resolve pages from the memo rows accumulated in the response cache table.

    An exact ``(shape, skip)`` row wins. Otherwise a skip beyond the greatest recorded
    skip of the shape advances one page past that row; anything else starts at page 1.
    Callers are expected to walk skips in page-sized steps, as produced by the catalog's
    own pagination links.
    """

    def __init__(self, store: ResponseCacheStore) -> None:
        self._store = store

    async def resolve(self, shape: QueryShape, skip: int) -> int:
        try:
            exact = await asyncio.to_thread(self._store.exact_memo, shape, skip)
            if exact is not None:
                logger.debug("Determined page from cache: %s", exact.page)
                return exact.page

            latest = await asyncio.to_thread(self._store.latest_memo, shape)
        except Exception as exc:
            logger.error("Error resolving page for skip=%s shape=%s: %s", skip, shape, exc)
            return 1

        if latest is not None and skip > latest.skip:
            logger.debug("Current skip %s past last skip %s, page %s", skip, latest.skip, latest.page + 1)
            return latest.page + 1

        logger.debug("Default page: 1")
        return 1
