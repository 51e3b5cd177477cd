"""Drive the detail enricher over many titles in dispatcher-sized batches."""
from __future__ import annotations

import logging
from typing import Any, Sequence

from .dispatcher import RequestDispatcher
from .enricher import DetailEnricher

logger = logging.getLogger(__name__)


def chunk_sequence(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    """Split ``items`` into consecutive slices of at most ``size`` elements."""

    return [items[start : start + size] for start in range(0, len(items), size)]


class BatchFetcher:
    """Enrich titles batch by batch; a batch starts only after the previous one drained."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        enricher: DetailEnricher,
        *,
        batch_size: int = 20,
    ) -> None:
        self._dispatcher = dispatcher
        self._enricher = enricher
        self._batch_size = batch_size

    async def fetch(
        self,
        content_ids: Sequence[int],
        content_type: str,
        api_key: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return the enrichment results of every title that did not fail."""

        results: list[dict[str, Any]] = []
        for batch in chunk_sequence(list(content_ids), self._batch_size):
            cohort = self._dispatcher.submit_cohort(
                self._unit(content_id, content_type, api_key) for content_id in batch
            )
            outcomes = await cohort.drained()
            for content_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error("Failed to enrich %s %s: %s", content_type, content_id, outcome)
                    continue
                results.append(outcome)
        return results

    def _unit(self, content_id: int, content_type: str, api_key: str | None):
        return lambda: self._enricher.enrich(content_id, content_type, api_key)
