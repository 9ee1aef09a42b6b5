import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from ponnect_alerts.errors import ValidationError
from ponnect_alerts.models.schemas import STATE_REGIONS, ClassifiedAlert

ALL_REGIONS_KEY = "all"


@dataclass(frozen=True)
class CacheEntry:
    data: tuple[ClassifiedAlert, ...]
    timestamp: float
    fetched_at: datetime


def cache_key(region: str | None) -> str:
    if not region:
        return ALL_REGIONS_KEY
    normalized = region.strip().upper()
    if not normalized or normalized == "ALL":
        return ALL_REGIONS_KEY
    # Only known codes become keys, so the cache stays bounded.
    if normalized not in STATE_REGIONS:
        raise ValidationError("Invalid region")
    return normalized


class AlertCache:
    """Per-key alert lists that expire after a fixed TTL.

    Entries are only ever replaced whole; readers never see a partial update.
    """

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            return None
        return entry

    def set(self, key: str, alerts: list[ClassifiedAlert]) -> CacheEntry:
        entry = CacheEntry(
            data=tuple(alerts),
            timestamp=self._clock(),
            fetched_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
