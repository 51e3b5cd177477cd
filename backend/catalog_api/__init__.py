"""Stremio catalog service backed by TMDB discover queries."""

from .app import create_app

__all__ = ["create_app"]
