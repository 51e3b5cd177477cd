"""Shared fixtures for the catalog test suites."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.tests.tmdb_fake import FakeTmdb  # noqa: E402


@pytest.fixture()
def fake_tmdb() -> FakeTmdb:
    return FakeTmdb()


@pytest.fixture()
def settings(tmp_path: Path) -> CatalogSettings:
    """Settings pointing at an isolated database and poster directory."""

    return CatalogSettings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        redis_url="fakeredis://",
        redis_queue_name=f"catalog-{tmp_path.name}",
        poster_directory=str(tmp_path / "posters"),
        tmdb_bearer_token="test-token",
        tmdb_watch_regions="US",
        refresh_providers_on_startup=False,
        cache_sweep_interval_hours=0,
    )
