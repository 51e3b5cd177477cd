"""Build full meta objects from the metadata and episode caches."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..stores.metadata_store import MetadataStore
from .enricher import normalize_media_type
from .episodes import EpisodeService
from .presentation import ID_PREFIX, to_meta

logger = logging.getLogger(__name__)


def clean_content_id(raw_id: str) -> str:
    return raw_id[len(ID_PREFIX) :] if raw_id.startswith(ID_PREFIX) else raw_id


class MetaService:
    """Serve meta requests only for titles a catalog page has already enriched."""

    def __init__(
        self,
        store: MetadataStore,
        episodes: EpisodeService,
        *,
        api_key: str | None = None,
    ) -> None:
        self._store = store
        self._episodes = episodes
        self._api_key = api_key

    async def build_meta(self, content_type: str, raw_id: str) -> dict[str, Any] | None:
        cleaned_id = clean_content_id(raw_id)
        try:
            content_id = int(cleaned_id)
        except ValueError:
            logger.warning("Ignoring meta request for non-TMDB id: %s", raw_id)
            return None

        metadata = await asyncio.to_thread(
            self._store.get, content_id, normalize_media_type(content_type)
        )
        if metadata is None:
            logger.warning("No metadata found for ID: %s", cleaned_id)
            return None

        episodes = None
        if content_type == "series":
            episodes = await self._episodes.ensure_episodes(content_id, self._api_key)
        return to_meta(metadata, content_type, episodes)
