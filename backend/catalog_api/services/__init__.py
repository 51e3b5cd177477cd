"""Upstream pipeline: dispatcher, cached fetches, enrichment and discover."""

from .batch import BatchFetcher
from .cursor import CursorResolver
from .discover import DiscoverOrchestrator, DiscoverQuery
from .dispatcher import Cohort, RequestDispatcher
from .enricher import DetailEnricher
from .fetcher import CachedFetcher
from .tmdb_client import TmdbClient, UpstreamError

__all__ = [
    "BatchFetcher",
    "CachedFetcher",
    "Cohort",
    "CursorResolver",
    "DetailEnricher",
    "DiscoverOrchestrator",
    "DiscoverQuery",
    "RequestDispatcher",
    "TmdbClient",
    "UpstreamError",
]
