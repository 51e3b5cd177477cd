"""Asynchronous TMDB client whose every request passes through the shared dispatcher."""
from __future__ import annotations

import logging
import re
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from .dispatcher import RequestDispatcher

logger = logging.getLogger(__name__)

_API_KEY_PATTERN = re.compile(r"([?&]api_key=)[^&]*")


class UpstreamError(RuntimeError):
    """Raised when a TMDB request fails at the transport or HTTP level."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def redact(url: str) -> str:
    """Mask the api_key query parameter for logging."""

    return _API_KEY_PATTERN.sub(r"\1***", url)


def strip_api_key(url: str) -> str:
    """Remove the api_key query parameter so cache keys never hold credentials."""

    stripped = re.sub(r"([?&])api_key=[^&]*&?", r"\1", url)
    return stripped.rstrip("?&")


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TmdbClient:
    """Thin wrapper around ``httpx.AsyncClient`` for the TMDB REST API."""

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        base_url: str = "https://api.themoviedb.org/3",
        bearer_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.base_url = base_url.rstrip("/")
        self._bearer_token = bearer_token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def build_url(self, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        """Return the fully-qualified URL for ``endpoint`` with encoded parameters."""

        url = f"{self.base_url}{endpoint}"
        query = {key: _encode(value) for key, value in (params or {}).items() if value is not None}
        return f"{url}?{urlencode(query)}" if query else url

    async def get_json(self, url: str, *, api_key: str | None = None) -> dict[str, Any]:
        """Fetch ``url`` through the dispatcher and return the decoded JSON body."""

        headers: dict[str, str] = {}
        if not api_key and self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        return await self.dispatcher.run(lambda: self._fetch(url, headers))

    async def _fetch(self, url: str, headers: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._http().get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Error during API request for URL: %s - HTTP %s",
                redact(url),
                exc.response.status_code,
            )
            raise UpstreamError(
                f"TMDB responded with HTTP {exc.response.status_code}",
                url=redact(url),
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Error during API request for URL: %s - %s", redact(url), exc)
            raise UpstreamError(f"Failed to contact TMDB: {exc}", url=redact(url)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("TMDB returned invalid JSON", url=redact(url)) from exc
        logger.debug("API request successful for URL: %s", redact(url))
        return payload

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
