# inventory_engine/orchestration/result_cache.py

"""
Result cache for analysis reports.

Entries live in named regions, each with its own TTL:

    base_inventory_report   300 s
    advanced_analysis       900 s
    forecast_analysis      1800 s
    integrated_analysis     600 s
    performance_metrics     120 s
    dashboard_data           60 s
    (any other region)      300 s

Expired entries count as misses and are evicted when touched. Without
single-flight, concurrent misses on the same key each compute and the
last write wins.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from inventory_engine.config.settings import EngineSettings

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache:
    """
    Thread-safe TTL cache keyed by (region, key).

    Args:
        settings: Source of the per-region TTLs
        clock: Monotonic seconds; injectable for tests
        single_flight: Share one computation between concurrent
            get_or_compute calls for the same key
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        single_flight: Optional[bool] = None
    ):
        self.settings = settings or EngineSettings()
        self.clock = clock
        self.single_flight = (
            self.settings.cache_single_flight if single_flight is None else single_flight
        )

        self._entries: Dict[Tuple[str, Hashable], CacheEntry] = {}
        self._in_flight: Dict[Tuple[str, Hashable], Future] = {}
        self._lock = threading.RLock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0

    def get(self, region: str, key: Hashable, default: Any = None) -> Any:
        """
        Cached value, or default on a miss.

        Pass a sentinel default to tell a cached None from a miss.
        """
        value = self._lookup(region, key)
        return default if value is _MISSING else value

    def _lookup(self, region: str, key: Hashable) -> Any:
        with self._lock:
            entry = self._entries.get((region, key))
            if entry is None:
                self._misses += 1
                return _MISSING
            if entry.is_expired(self.clock()):
                del self._entries[(region, key)]
                self._expirations += 1
                self._misses += 1
                return _MISSING
            self._hits += 1
            return entry.value

    def put(self, region: str, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.settings.cache_ttl(region) if ttl is None else ttl
        with self._lock:
            self._entries[(region, key)] = CacheEntry(value, self.clock() + ttl)

    def get_or_compute(
        self,
        region: str,
        key: Hashable,
        compute: Callable[[], Any]
    ) -> Any:
        """
        Cached value, computing and storing it on a miss.

        A failing compute stores nothing and re-raises.
        """
        value = self._lookup(region, key)
        if value is not _MISSING:
            return value

        if not self.single_flight:
            value = compute()
            self.put(region, key, value)
            return value

        with self._lock:
            # Another caller may have stored it while we were unlocked
            entry = self._entries.get((region, key))
            if entry is not None and not entry.is_expired(self.clock()):
                return entry.value
            pending = self._in_flight.get((region, key))
            owner = pending is None
            if owner:
                pending = Future()
                self._in_flight[(region, key)] = pending

        if not owner:
            logger.debug(f"Waiting for in-flight computation of {region}:{key}")
            return pending.result()

        try:
            value = compute()
        except BaseException as exc:
            with self._lock:
                del self._in_flight[(region, key)]
            pending.set_exception(exc)
            raise

        with self._lock:
            self._entries[(region, key)] = CacheEntry(
                value, self.clock() + self.settings.cache_ttl(region)
            )
            del self._in_flight[(region, key)]
        pending.set_result(value)
        return value

    def invalidate(self, region: str, key: Optional[Hashable] = None) -> int:
        """Drop one key, or the whole region when key is None. Returns entries removed."""
        with self._lock:
            if key is not None:
                return 1 if self._entries.pop((region, key), None) is not None else 0
            doomed = [k for k in self._entries if k[0] == region]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Result cache cleared")

    @property
    def hit_rate(self) -> float:
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total else 0.0

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                'size': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'expirations': self._expirations,
                'hit_rate': self._hits / total if total else 0.0,
            }

    def __len__(self):
        with self._lock:
            return len(self._entries)
