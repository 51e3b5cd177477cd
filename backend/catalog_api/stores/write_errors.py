"""Out-of-band record of failed best-effort cache writes."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CacheWriteFailure:
    """One failed cache write."""

    tier: str
    key: str
    error: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CacheWriteErrors:
    """Collects cache write failures so they stay observable after being swallowed."""

    def __init__(self, *, history: int = 100) -> None:
        self._recent: deque[CacheWriteFailure] = deque(maxlen=history)
        self._total = 0
        self._lock = Lock()

    def report(self, tier: str, key: str, exc: BaseException) -> None:
        """Log the failure and keep it in the bounded history."""

        logger.error("Failed to write %s cache entry %s: %s", tier, key, exc)
        with self._lock:
            self._total += 1
            self._recent.append(CacheWriteFailure(tier=tier, key=key, error=str(exc)))

    @property
    def total(self) -> int:
        return self._total

    def recent(self) -> list[CacheWriteFailure]:
        with self._lock:
            return list(self._recent)
