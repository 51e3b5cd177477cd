"""Tests for the response cache table and the skip-to-page cursor built on it."""
from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import create_engine

from backend.catalog_api.db import init_database
from backend.catalog_api.services.cursor import CursorResolver
from backend.catalog_api.stores.response_cache import QueryShape, ResponseCacheStore
from backend.catalog_api.stores.write_errors import CacheWriteErrors

SHAPE = QueryShape(provider_id="8", query_type="movie", sort_by="popularity.desc", age_range=None)


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def store(tmp_path: Path, clock: Clock) -> ResponseCacheStore:
    engine = create_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    init_database(engine)
    return ResponseCacheStore(engine, ttl_seconds=60, clock=clock)


def test_fresh_entry_is_served_until_it_expires(store: ResponseCacheStore, clock: Clock) -> None:
    store.put("https://tmdb/discover?page=1", {"page": 1})

    assert store.get_fresh("https://tmdb/discover?page=1") == {"page": 1}

    clock.now += 61
    assert store.get_fresh("https://tmdb/discover?page=1") is None


def test_put_replaces_existing_row(store: ResponseCacheStore) -> None:
    store.put("key", {"v": 1})
    store.put("key", {"v": 2})

    assert store.get_fresh("key") == {"v": 2}


def test_memo_survives_expiration_until_sweep(store: ResponseCacheStore, clock: Clock) -> None:
    """Expired rows keep answering pagination lookups until they are swept."""

    store.put("k1", {"page": 1}, page=1, skip=0, shape=SHAPE)
    store.put("k2", {"page": 2}, page=2, skip=20, shape=SHAPE)
    clock.now += 3_600

    assert store.get_fresh("k2") is None
    assert store.exact_memo(SHAPE, 20).page == 2
    assert store.latest_memo(SHAPE).skip == 20
    resolver = CursorResolver(store)
    assert asyncio.run(resolver.resolve(SHAPE, 20)) == 2
    assert asyncio.run(resolver.resolve(SHAPE, 40)) == 3

    assert store.sweep() == 2
    assert store.latest_memo(SHAPE) is None


def test_sweep_keeps_fresh_rows(store: ResponseCacheStore, clock: Clock) -> None:
    store.put("old", {"v": 1})
    clock.now += 30
    store.put("new", {"v": 2})
    clock.now += 40

    assert store.sweep() == 1
    assert store.get_fresh("new") == {"v": 2}


def test_null_age_range_only_matches_null_rows(store: ResponseCacheStore) -> None:
    kids = QueryShape(provider_id="8", query_type="movie", sort_by="popularity.desc", age_range="6-11")
    store.put("kids", {}, page=4, skip=60, shape=kids)

    assert store.latest_memo(SHAPE) is None
    assert store.latest_memo(kids).page == 4


def test_write_failures_are_recorded_not_raised(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-tables.db'}")
    errors = CacheWriteErrors()
    store = ResponseCacheStore(engine, ttl_seconds=60, errors=errors)

    store.put("key", {"v": 1})

    assert errors.total == 1
    assert errors.recent()[0].tier == "response"
    assert store.get_fresh("key") is None


def test_memo_read_failure_surfaces_from_store(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-tables.db'}")
    store = ResponseCacheStore(engine, ttl_seconds=60)

    with pytest.raises(OperationalError):
        store.latest_memo(SHAPE)


@pytest.mark.parametrize(
    ("skip", "expected"),
    [
        (0, 1),
        (20, 2),
        (40, 3),
        (10, 1),
    ],
)
def test_cursor_resolution(store: ResponseCacheStore, skip: int, expected: int) -> None:
    store.put("k1", {}, page=1, skip=0, shape=SHAPE)
    store.put("k2", {}, page=2, skip=20, shape=SHAPE)

    assert asyncio.run(CursorResolver(store).resolve(SHAPE, skip)) == expected


def test_cursor_starts_at_first_page_without_memo(store: ResponseCacheStore) -> None:
    assert asyncio.run(CursorResolver(store).resolve(SHAPE, 100)) == 1


def test_cursor_falls_back_to_first_page_on_storage_error(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-tables.db'}")
    resolver = CursorResolver(ResponseCacheStore(engine, ttl_seconds=60))

    assert asyncio.run(resolver.resolve(SHAPE, 40)) == 1
