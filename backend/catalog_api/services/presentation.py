"""
Stremio response builders.
Pure mapping functions, no I/O: cached metadata and discover results in,
addon protocol objects out.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from urllib.parse import quote

from ..schemas import EpisodeModel, MetadataModel

IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
ID_PREFIX = "tt:"


def image_url(path: str | None, size: str) -> str | None:
    return f"{IMAGE_BASE_URL}/{size}{path}" if path else None


def _iso(date_str: str | None) -> str | None:
    if not date_str:
        return None
    try:
        return datetime.fromisoformat(date_str).strftime("%Y-%m-%dT%H:%M:%S.000Z")
    except ValueError:
        return None


def share_slug(media_type: str, title: str, imdb_id: str | None) -> str:
    """Build the strem.io share path, e.g. ``movie/the-title-0133093``."""

    normalized_title = "-".join(title.strip().lower().split())
    formatted_imdb_id = imdb_id.replace("tt", "") if imdb_id else ""
    return f"{media_type}/{normalized_title}-{formatted_imdb_id}"


def build_links(metadata: MetadataModel) -> list[dict[str, str]]:
    """Genre, director, cast, rating and share links for a title."""

    links = [
        {"name": genre, "category": "Genres", "url": "stremio:///discover"}
        for genre in metadata.genres
    ]
    links.extend(
        {"name": name, "category": "Directors", "url": f"stremio:///search?search={quote(name)}"}
        for name in metadata.directors
    )
    links.extend(
        {"name": name, "category": "Cast", "url": f"stremio:///search?search={quote(name)}"}
        for name in metadata.main_cast
    )
    if metadata.vote_average and metadata.imdb_id:
        links.append(
            {
                "name": f"{metadata.vote_average:.1f}",
                "category": "imdb",
                "url": f"https://imdb.com/title/{metadata.imdb_id}",
            }
        )
    if metadata.title:
        links.append(
            {
                "name": metadata.title,
                "category": "share",
                "url": "https://www.strem.io/s/"
                + share_slug(metadata.media_type, metadata.title, metadata.imdb_id),
            }
        )
    return links


def release_info(content: dict[str, Any], catalog_type: str) -> str | None:
    """Year for movies, ``start-end`` span for series."""

    if catalog_type == "movies":
        release_date = content.get("release_date")
        return release_date.split("-")[0] if release_date else None

    first_air_date = content.get("first_air_date")
    if not first_air_date:
        return None
    last_air_date = content.get("last_air_date")
    end_year = last_air_date.split("-")[0] if last_air_date else ""
    return f"{first_air_date.split('-')[0]}-{end_year}"


def to_catalog_meta(
    content: dict[str, Any],
    catalog_type: str,
    poster_url: str,
    metadata: MetadataModel | None,
) -> dict[str, Any]:
    """Map a discover result to a catalog meta preview."""

    return {
        "id": f"{ID_PREFIX}{content['id']}",
        "type": "movie" if catalog_type == "movies" else "series",
        "name": content.get("title") if catalog_type == "movies" else content.get("name"),
        "poster": poster_url,
        "background": image_url(content.get("backdrop_path"), "w1280"),
        "description": content.get("overview"),
        "releaseInfo": release_info(content, catalog_type),
        "runtime": metadata.runtime if metadata else None,
        "links": build_links(metadata) if metadata else [],
    }


def to_videos(series_id: int, episodes: list[EpisodeModel]) -> list[dict[str, Any]]:
    return [
        {
            "id": f"{series_id}:{episode.season_number}:{episode.episode_number}",
            "title": episode.name or "No Title",
            "released": _iso(episode.air_date),
            "thumbnail": image_url(episode.still_path, "w500"),
            "episode": episode.episode_number,
            "season": episode.season_number,
            "overview": episode.overview or "No Overview",
        }
        for episode in episodes
    ]


def to_meta(
    metadata: MetadataModel,
    content_type: str,
    episodes: list[EpisodeModel] | None = None,
) -> dict[str, Any]:
    """Map a cached metadata record (and episodes for series) to a full meta object."""

    meta: dict[str, Any] = {
        "id": str(metadata.imdb_id),
        "type": "series" if content_type == "series" else "movie",
        "name": metadata.title,
        "background": image_url(metadata.backdrop_path, "original"),
        "description": metadata.overview,
        "releaseInfo": metadata.release_date[:4] if metadata.release_date else None,
        "released": _iso(metadata.release_date),
        "runtime": metadata.runtime,
        "language": metadata.original_language,
        "country": metadata.production_countries[0] if metadata.production_countries else None,
        "trailers": [{"source": metadata.video_key, "type": "Trailer"}] if metadata.video_key else [],
        "links": build_links(metadata),
    }
    if content_type == "series":
        meta["videos"] = to_videos(metadata.id, episodes or [])
    return meta


def build_manifest(
    providers: list[dict[str, Any]],
    movie_genres: list[str],
    series_genres: list[str],
    age_range: str | None,
) -> dict[str, Any]:
    """Assemble the addon manifest with Popular/New catalogs per provider."""

    is_kids_mode = bool(age_range) and age_range != "18+"
    catalogs = []
    for provider in providers:
        for kind, id_suffix, genres in (
            ("movie", "movies", movie_genres),
            ("series", "series", series_genres),
        ):
            for catalog_type in ("Popular", "New"):
                catalogs.append(
                    {
                        "type": kind,
                        "id": f"tmdb-discover-{id_suffix}-{catalog_type.lower()}-{provider['id']}",
                        "name": f"{catalog_type} - {provider['display_name']}",
                        "extra": [
                            {"name": "genre", "isRequired": False, "options": list(genres)},
                            {"name": "skip", "isRequired": False},
                            {"name": "ageRange", "value": age_range if is_kids_mode else "18+"},
                        ],
                    }
                )

    return {
        "id": "community.tmdbstreamingcatalogproviders",
        "version": "1.0.0",
        "name": "TMDB Streaming Catalog Providers",
        "description": "Catalog from TMDB streaming providers.",
        "resources": ["catalog", "meta"],
        "types": ["movie", "series"],
        "idPrefixes": [ID_PREFIX],
        "catalogs": catalogs,
        "behaviorHints": {"configurable": True, "configurationRequired": False},
    }
