"""Tests for batched enrichment through the shared dispatcher."""
from __future__ import annotations

import asyncio

from backend.catalog_api.services.batch import BatchFetcher, chunk_sequence
from backend.catalog_api.services.dispatcher import RequestDispatcher
from backend.catalog_api.state import AppState
from backend.tests.tmdb_fake import make_details


class RecordingEnricher:
    """Stand-in enricher that records when each title starts and finishes."""

    def __init__(self, failing: set[int] | None = None) -> None:
        self.events: list[tuple[str, int]] = []
        self.failing = failing or set()

    async def enrich(self, content_id: int, content_type: str, api_key: str | None = None) -> dict:
        self.events.append(("start", content_id))
        await asyncio.sleep(0.001 * (content_id % 3))
        self.events.append(("end", content_id))
        if content_id in self.failing:
            raise RuntimeError(f"cannot enrich {content_id}")
        return {"id": content_id, "type": content_type}


def test_chunk_sequence_keeps_order_and_remainder() -> None:
    assert chunk_sequence(list(range(5)), 2) == [[0, 1], [2, 3], [4]]
    assert chunk_sequence([], 20) == []


def test_batches_run_one_after_another() -> None:
    """45 titles run as cohorts of 20, 20 and 5; a cohort starts only after the previous drained."""

    enricher = RecordingEnricher()
    fetcher = BatchFetcher(RequestDispatcher(capacity=45), enricher, batch_size=20)

    results = asyncio.run(fetcher.fetch(list(range(45)), "movie"))

    assert len(results) == 45
    positions = {event: index for index, event in enumerate(enricher.events)}
    for previous, following in ((range(0, 20), range(20, 40)), (range(20, 40), range(40, 45))):
        last_end = max(positions[("end", content_id)] for content_id in previous)
        first_start = min(positions[("start", content_id)] for content_id in following)
        assert last_end < first_start


def test_failed_titles_are_skipped() -> None:
    enricher = RecordingEnricher(failing={2, 7})
    fetcher = BatchFetcher(RequestDispatcher(capacity=4), enricher, batch_size=5)

    results = asyncio.run(fetcher.fetch(list(range(10)), "series"))

    assert [item["id"] for item in results] == [0, 1, 3, 4, 5, 6, 8, 9]


def test_empty_input_issues_no_work() -> None:
    enricher = RecordingEnricher()
    fetcher = BatchFetcher(RequestDispatcher(capacity=4), enricher, batch_size=5)

    assert asyncio.run(fetcher.fetch([], "movie")) == []
    assert enricher.events == []


def test_batch_enrichment_against_upstream_with_small_pool(settings, fake_tmdb) -> None:
    """Enrichment units issuing upstream calls complete even when the pool is tiny."""

    settings.request_concurrency = 2
    for content_id in range(1, 6):
        fake_tmdb.details[("movie", content_id)] = make_details(content_id)
    fake_tmdb.failing_details.add(4)
    state = AppState(settings, transport=fake_tmdb.transport())

    results = asyncio.run(
        asyncio.wait_for(state.batch_fetcher.fetch([1, 2, 3, 4, 5], "movie"), timeout=5)
    )

    assert sorted(item["id"] for item in results) == [1, 2, 3, 5]
    assert state.metadata_store.get(4, "movie") is None
    assert state.dispatcher.in_flight == 0
