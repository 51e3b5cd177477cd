"""Router exports for the Catalog API."""
from . import catalog, health, jobs, manifest, meta, posters, providers

__all__ = ["catalog", "health", "jobs", "manifest", "meta", "posters", "providers"]
