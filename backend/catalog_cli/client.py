"""HTTP client helpers for the catalog CLI."""
from __future__ import annotations

import httpx

USER_AGENT = "catalog-cli/0.1.0"


def create_client(
    base_url: str, *, timeout: float = 30.0, transport: httpx.BaseTransport | None = None
) -> httpx.Client:
    """Client for the Catalog API; catalog pages can take a while on a cold cache."""

    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )
