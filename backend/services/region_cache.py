"""
Bounded in-process cache for reverse-geocoded regions.

Keys are coordinates rounded to 3 decimals (~100 m) so near-duplicate
lookups share one upstream request. Failures are cached too, under a shorter
TTL, so a failing coordinate is not retried on every request.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from domain.models import Outcome, RegionInfo

logger = logging.getLogger(__name__)

CacheKey = Tuple[float, float]


def _round_coord(value: float, decimals: int = 3) -> float:
    """Round coordinates before caching / lookup to limit request diversity."""
    return round(value, decimals)


def region_cache_key(lat: float, lon: float) -> CacheKey:
    return (_round_coord(lat), _round_coord(lon))


@dataclass
class _Entry:
    outcome: Outcome
    expires_at: float


class RegionCache:
    def __init__(
        self,
        max_entries: int = 2048,
        ttl_seconds: float = 24 * 3600,
        failure_ttl_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.failure_ttl_seconds = failure_ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, _Entry]" = OrderedDict()
        self._inflight: Dict[CacheKey, threading.Event] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _get_fresh(self, key: CacheKey) -> Optional[Outcome]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.outcome

    def _store(self, key: CacheKey, outcome: Outcome) -> None:
        ttl = self.ttl_seconds if outcome.is_ok else self.failure_ttl_seconds
        self._entries[key] = _Entry(outcome=outcome, expires_at=self._clock() + ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("region cache evicted %s", evicted)

    def get(self, lat: float, lon: float) -> Optional[Outcome]:
        with self._lock:
            return self._get_fresh(region_cache_key(lat, lon))

    def get_or_fetch(
        self,
        lat: float,
        lon: float,
        fetch: Callable[[float, float], Outcome],
    ) -> Outcome:
        """
        Return the cached outcome for the rounded coordinate, calling ``fetch``
        at most once per key. Concurrent callers for a key that is already
        being fetched wait for that call instead of issuing their own.
        """
        key = region_cache_key(lat, lon)
        while True:
            with self._lock:
                cached = self._get_fresh(key)
                if cached is not None:
                    logger.debug("region cache hit %s,%s", *key)
                    return cached
                waiter = self._inflight.get(key)
                if waiter is None:
                    waiter = threading.Event()
                    self._inflight[key] = waiter
                    break
            waiter.wait()

        logger.debug("region cache miss %s,%s", *key)
        try:
            try:
                outcome = fetch(key[0], key[1])
            except Exception as exc:
                logger.warning("region lookup raised for %s,%s: %s", key[0], key[1], exc)
                outcome = Outcome.soft(RegionInfo(), str(exc))
            with self._lock:
                self._store(key, outcome)
            return outcome
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            waiter.set()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
