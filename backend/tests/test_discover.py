"""Tests for region fan-out, pagination and enrichment of discover queries."""
from __future__ import annotations

import asyncio

import httpx
import pytest
from sqlmodel import Session, select

from backend.catalog_api.models import CacheEntryRecord
from backend.catalog_api.services.discover import DiscoverQuery, age_range_params, merge_unique
from backend.catalog_api.services.tmdb_client import UpstreamError
from backend.catalog_api.state import AppState
from backend.tests.tmdb_fake import make_details, make_title


def _seed_details(fake_tmdb, ids, media_type="movie") -> None:
    for content_id in ids:
        fake_tmdb.details[(media_type, content_id)] = make_details(content_id, media_type)


def test_merge_unique_keeps_first_occurrence() -> None:
    pages = [
        {"results": [{"id": 1, "region": "US"}, {"id": 2, "region": "US"}]},
        {"results": [{"id": 2, "region": "FR"}, {"id": 3, "region": "FR"}]},
    ]

    merged = merge_unique(pages)

    assert [item["id"] for item in merged] == [1, 2, 3]
    assert merged[1]["region"] == "US"


@pytest.mark.parametrize(
    ("age_range", "media_type", "expected"),
    [
        ("6-11", "tv", {"with_genres": "10762"}),
        ("12-15", "movie", {"certification_country": "US", "certification": "PG"}),
        ("16-17", "tv", {}),
        ("18+", "movie", {"include_adult": True}),
        ("99+", "movie", {}),
        (None, "movie", {}),
    ],
)
def test_age_range_params(age_range, media_type, expected) -> None:
    assert age_range_params(age_range, media_type) == expected


def test_discover_merges_regions_and_enriches(settings, fake_tmdb) -> None:
    settings.tmdb_watch_regions = "US,FR"
    fake_tmdb.discover_pages[("US", 1)] = [make_title(1), make_title(2)]
    fake_tmdb.discover_pages[("FR", 1)] = [make_title(2), make_title(3)]
    _seed_details(fake_tmdb, [1, 2, 3])
    state = AppState(settings, transport=fake_tmdb.transport())

    result = asyncio.run(
        state.discover.discover(DiscoverQuery(content_type="movie", providers=["8"], skip=0))
    )

    assert result["page"] == 1
    assert [item["id"] for item in result["results"]] == [1, 2, 3]
    assert {request.url.params["watch_region"] for request in fake_tmdb.calls("/discover/movie")} == {
        "US",
        "FR",
    }
    for content_id in (1, 2, 3):
        assert state.metadata_store.get(content_id, "movie") is not None


def test_discover_query_parameters(settings, fake_tmdb) -> None:
    state = AppState(settings, transport=fake_tmdb.transport())

    asyncio.run(
        state.discover.discover(
            DiscoverQuery(
                content_type="series",
                providers=["337"],
                sort_by="first_air_date.desc",
                genre=10759,
                age_range="12-15",
                language="fr-FR",
            )
        )
    )

    params = fake_tmdb.calls("/discover/tv")[0].url.params
    assert params["with_watch_providers"] == "337"
    assert params["sort_by"] == "first_air_date.desc"
    assert params["with_genres"] == "10759"
    assert params["language"] == "fr-FR"
    assert params["watch_region"] == "US"
    assert params["page"] == "1"


def test_discover_without_regions_sends_one_query(settings, fake_tmdb) -> None:
    settings.tmdb_watch_regions = ""
    fake_tmdb.discover_pages[(None, 1)] = [make_title(1)]
    _seed_details(fake_tmdb, [1])
    state = AppState(settings, transport=fake_tmdb.transport())

    result = asyncio.run(state.discover.discover(DiscoverQuery(content_type="movie", providers=["8"])))

    calls = fake_tmdb.calls("/discover/movie")
    assert len(calls) == 1
    assert "watch_region" not in calls[0].url.params
    assert [item["id"] for item in result["results"]] == [1]


def test_skip_walks_pages_and_repeats_from_cache(settings, fake_tmdb) -> None:
    """Consecutive skips advance one upstream page each; a repeated skip is served from cache."""

    fake_tmdb.discover_pages[("US", 1)] = [make_title(1)]
    fake_tmdb.discover_pages[("US", 2)] = [make_title(2)]
    fake_tmdb.discover_pages[("US", 3)] = [make_title(3)]
    _seed_details(fake_tmdb, [1, 2, 3])
    state = AppState(settings, transport=fake_tmdb.transport())

    async def page_for(skip: int) -> list[int]:
        result = await state.discover.discover(
            DiscoverQuery(content_type="movie", providers=["8"], skip=skip)
        )
        return [item["id"] for item in result["results"]]

    assert asyncio.run(page_for(0)) == [1]
    assert asyncio.run(page_for(20)) == [2]
    assert asyncio.run(page_for(40)) == [3]
    assert asyncio.run(page_for(20)) == [2]

    pages = [request.url.params["page"] for request in fake_tmdb.calls("/discover/movie")]
    assert pages == ["1", "2", "3"]


def test_cache_key_never_contains_api_key(settings, fake_tmdb) -> None:
    fake_tmdb.discover_pages[("US", 1)] = [make_title(1)]
    _seed_details(fake_tmdb, [1])
    state = AppState(settings, transport=fake_tmdb.transport())

    asyncio.run(
        state.discover.discover(
            DiscoverQuery(content_type="movie", providers=["8"], api_key="secret-key")
        )
    )

    assert fake_tmdb.calls("/discover/movie")[0].url.params["api_key"] == "secret-key"
    with Session(state.engine) as session:
        keys = list(session.exec(select(CacheEntryRecord.key)))
    assert keys
    assert all("secret-key" not in key and "api_key" not in key for key in keys)


def test_age_ranges_sharing_upstream_urls_paginate_independently(settings, fake_tmdb) -> None:
    fake_tmdb.discover_pages[("US", 1)] = [make_title(1)]
    fake_tmdb.discover_pages[("US", 2)] = [make_title(2)]
    _seed_details(fake_tmdb, [1, 2], media_type="tv")
    state = AppState(settings, transport=fake_tmdb.transport())

    async def page_for(age_range, skip: int) -> list[int]:
        result = await state.discover.discover(
            DiscoverQuery(content_type="series", providers=["8"], age_range=age_range, skip=skip)
        )
        return [item["id"] for item in result["results"]]

    assert asyncio.run(page_for(None, 0)) == [1]
    assert asyncio.run(page_for("18+", 0)) == [1]
    assert asyncio.run(page_for("18+", 20)) == [2]

    with Session(state.engine) as session:
        rows = session.exec(
            select(CacheEntryRecord).where(CacheEntryRecord.age_range == "18+")
        ).all()
    assert sorted((row.skip, row.page) for row in rows) == [(0, 1), (20, 2)]


def _gated_state(settings, fake_tmdb):
    """State whose upstream responses wait until the returned event is set."""

    gate: dict[str, asyncio.Event] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        await gate["open"].wait()
        return fake_tmdb.handle(request)

    settings.coalesce_requests = True
    return AppState(settings, transport=httpx.MockTransport(handler)), gate


async def _concurrent_fetches(state, gate, endpoint: str) -> list:
    gate["open"] = asyncio.Event()
    first = asyncio.ensure_future(state.fetcher.fetch(endpoint))
    second = asyncio.ensure_future(state.fetcher.fetch(endpoint))
    await asyncio.sleep(0.2)
    gate["open"].set()
    return await asyncio.gather(first, second, return_exceptions=True)


def test_coalesced_fetches_share_one_upstream_call(settings, fake_tmdb) -> None:
    fake_tmdb.details[("tv", 50)] = make_details(50, "tv")
    state, gate = _gated_state(settings, fake_tmdb)

    first, second = asyncio.run(_concurrent_fetches(state, gate, "/tv/50"))

    assert first == second
    assert first["id"] == 50
    assert len(fake_tmdb.calls(r"^/3/tv/50$")) == 1


def test_coalesced_failure_reaches_every_waiter(settings, fake_tmdb) -> None:
    fake_tmdb.failing_details.add(77)
    state, gate = _gated_state(settings, fake_tmdb)

    results = asyncio.run(_concurrent_fetches(state, gate, "/tv/77"))

    assert all(isinstance(result, UpstreamError) for result in results)
    assert len(fake_tmdb.calls(r"^/3/tv/77$")) == 1
