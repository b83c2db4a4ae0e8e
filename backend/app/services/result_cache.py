import logging
import threading
import time
from typing import Callable, NamedTuple

from backend.app.models import AggregatedResult

logger = logging.getLogger(__name__)

RESULT_CACHE_TTL_SECONDS = 10 * 60  # 10 minutes


class CacheEntry(NamedTuple):
    key: str
    data: AggregatedResult
    timestamp: float


class CacheLookup(NamedTuple):
    data: AggregatedResult
    served_from_cache: bool
    cached_at: float


def normalize_keywords(raw: str | list[str]) -> list[str]:
    parts = raw.split(",") if isinstance(raw, str) else raw
    return [part.strip() for part in parts if part and part.strip()]


def category_cache_key(category_id: str, result_bound: int) -> str:
    return f"category:{category_id}:{result_bound}"


def search_cache_key(keywords: str | list[str], result_bound: int) -> str:
    normalized = ",".join(normalize_keywords(keywords))
    return f"search:{normalized}:{result_bound}"


class ResultCache:
    """
    Process-wide cache of aggregated results.
    Entries older than the TTL are ignored and overwritten on the next miss.
    Two concurrent misses on one key may both compute; the last write wins.
    """

    def __init__(self, ttl_seconds: int = RESULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def is_fresh(self, entry: CacheEntry, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        return now - entry.timestamp < self.ttl_seconds

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def put(self, key: str, data: AggregatedResult) -> CacheEntry:
        entry = CacheEntry(key=key, data=data, timestamp=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def get_or_compute(self, key: str, compute: Callable[[], AggregatedResult]) -> CacheLookup:
        hit = self.get(key)
        if hit is not None:
            logger.debug(f"Result cache hit for {key}")
            return CacheLookup(data=hit.data, served_from_cache=True, cached_at=hit.timestamp)

        logger.debug(f"Result cache miss for {key}")
        data = compute()
        entry = self.put(key, data)
        return CacheLookup(data=data, served_from_cache=False, cached_at=entry.timestamp)

    def expires_at(self, cached_at: float) -> float:
        return cached_at + self.ttl_seconds

    def invalidate_all(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        if dropped:
            logger.info(f"Result cache cleared ({dropped} entries)")
