"""Tests for the episode cache refresh and series meta objects."""
from __future__ import annotations

import asyncio

from backend.catalog_api.schemas import EpisodeModel
from backend.catalog_api.state import AppState
from backend.tests.tmdb_fake import make_details


def _episode(episode_id: int, season: int, number: int, **extra) -> dict:
    return {
        "id": episode_id,
        "season_number": season,
        "episode_number": number,
        "name": f"S{season}E{number}",
        "air_date": "2020-02-03",
        "still_path": f"/still{episode_id}.jpg",
        **extra,
    }


def _seed_series(fake_tmdb, seasons: int) -> None:
    fake_tmdb.details[("tv", 50)] = make_details(50, "tv", number_of_seasons=seasons)
    for season in range(1, seasons + 1):
        fake_tmdb.seasons[(50, season)] = [
            _episode(season * 100 + number, season, number) for number in (1, 2)
        ]


def test_empty_cache_fetches_every_season(settings, fake_tmdb) -> None:
    _seed_series(fake_tmdb, seasons=2)
    state = AppState(settings, transport=fake_tmdb.transport())

    episodes = asyncio.run(state.episodes.ensure_episodes(50))

    assert [(item.season_number, item.episode_number) for item in episodes] == [
        (1, 1),
        (1, 2),
        (2, 1),
        (2, 2),
    ]
    assert len(fake_tmdb.calls(r"/tv/50/season/\d+$")) == 2


def test_only_missing_seasons_are_fetched(settings, fake_tmdb) -> None:
    _seed_series(fake_tmdb, seasons=3)
    state = AppState(settings, transport=fake_tmdb.transport())
    state.episode_store.upsert_many(
        [EpisodeModel(id=101, show_id=50, season_number=1, episode_number=1)]
    )

    asyncio.run(state.episodes.ensure_episodes(50))

    fetched = sorted(request.url.path for request in fake_tmdb.calls(r"/tv/50/season/\d+$"))
    assert fetched == ["/3/tv/50/season/2", "/3/tv/50/season/3"]


def test_complete_cache_refreshes_latest_season(settings, fake_tmdb) -> None:
    _seed_series(fake_tmdb, seasons=2)
    state = AppState(settings, transport=fake_tmdb.transport())
    state.episode_store.upsert_many(
        [
            EpisodeModel(id=101, show_id=50, season_number=1, episode_number=1),
            EpisodeModel(id=201, show_id=50, season_number=2, episode_number=1),
        ]
    )

    episodes = asyncio.run(state.episodes.ensure_episodes(50))

    fetched = [request.url.path for request in fake_tmdb.calls(r"/tv/50/season/\d+$")]
    assert fetched == ["/3/tv/50/season/2"]
    assert len(episodes) == 3


def test_episode_slot_is_replaced_when_id_changes(settings) -> None:
    state = AppState(settings)
    state.episode_store.upsert_many(
        [EpisodeModel(id=1, show_id=9, season_number=1, episode_number=1, name="old")]
    )
    state.episode_store.upsert_many(
        [EpisodeModel(id=2, show_id=9, season_number=1, episode_number=1, name="new")]
    )

    episodes = state.episode_store.list_for_show(9)

    assert [(item.id, item.name) for item in episodes] == [(2, "new")]


def test_series_meta_lists_episode_videos(settings, fake_tmdb) -> None:
    _seed_series(fake_tmdb, seasons=1)
    state = AppState(settings, transport=fake_tmdb.transport())
    asyncio.run(state.enricher.enrich(50, "series"))

    meta = asyncio.run(state.meta.build_meta("series", "tt:50"))

    assert meta["id"] == "tt0000050"
    assert meta["type"] == "series"
    assert [video["id"] for video in meta["videos"]] == ["50:1:1", "50:1:2"]
    assert meta["videos"][0]["thumbnail"] == "https://image.tmdb.org/t/p/w500/still101.jpg"
    assert meta["videos"][0]["released"] == "2020-02-03T00:00:00.000Z"


def test_meta_for_unknown_title_is_none(settings, fake_tmdb) -> None:
    state = AppState(settings, transport=fake_tmdb.transport())

    assert asyncio.run(state.meta.build_meta("movie", "tt:404")) is None
    assert asyncio.run(state.meta.build_meta("movie", "tt0111161")) is None
    assert fake_tmdb.requests == []
