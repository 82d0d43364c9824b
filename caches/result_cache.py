"""
Single-Flight Result Cache

A TTL cache whose misses are coalesced per key: the first caller for a
missing key runs the computation, and every concurrent caller for the same
key waits on that caller's Future instead of recomputing.
"""

import hashlib
import json
import re
import threading
import time

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable

from tclogger import logger

from ranks.constants import CACHE_TTL_SECONDS, CACHE_NAMESPACES, CACHE_NAMESPACE_TYPE

CACHE_MAX_SIZE = 10000


def payload_digest(*payloads) -> str:
    """Stable short hash of JSON-like payloads, independent of dict key order."""
    raw = json.dumps(payloads, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def build_fingerprint(
    namespace: CACHE_NAMESPACE_TYPE,
    viewer_id: str = None,
    filter: str = None,
    cursor: str = None,
    limit: int = None,
    digest: str = None,
) -> str:
    """Deterministic cache key from viewer identity, filter and cursor.

    `digest` identifies caller-supplied candidates (see `payload_digest`);
    requests ranking different candidate sets must not share a key.

    Example:
        >>> build_fingerprint("feed", viewer_id="u1", limit=20)
        'feed:u1:-:-:20'
        >>> build_fingerprint("feed", viewer_id="u1", limit=20, digest="ab12")
        'feed:u1:-:-:20:ab12'
    """
    if namespace not in CACHE_NAMESPACES:
        raise ValueError(f"Unknown cache namespace: {namespace}")
    parts = [viewer_id or "anon", filter or "-", cursor or "-", limit or "-"]
    if digest:
        parts.append(digest)
    return ":".join([namespace, *(str(part) for part in parts)])


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    waits: int = 0
    failures: int = 0
    size: int = 0
    in_flight: int = 0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "waits": self.waits,
            "failures": self.failures,
            "size": self.size,
            "in_flight": self.in_flight,
        }


class ResultCache:
    """Read-through TTL cache with single-flight fills.

    One lock guards the entry and in-flight maps; computations themselves run
    outside the lock, so different keys fill concurrently.

    Example:
        >>> cache = ResultCache(ttl=60)
        >>> cache.get_or_set("feed:u1:-:-:20", lambda: compute_page())
        RankedPage(...)
        >>> cache.get_or_set("feed:u1:-:-:20", lambda: compute_page())  # hit
        RankedPage(...)
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        max_size: int = CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
        verbose: bool = False,
    ):
        self.ttl = ttl
        self.max_size = max_size
        self.clock = clock
        self.verbose = verbose
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def _get_fresh(self, key: str):
        """Return the live entry for key, dropping it if expired. Needs lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            del self._entries[key]
            return None
        return entry

    def _store(self, key: str, value, ttl: float) -> None:
        """Needs lock."""
        if key not in self._entries and len(self._entries) >= self.max_size:
            # dicts keep insertion order: first key is the oldest
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
        self._entries[key] = CacheEntry(value=value, expires_at=self.clock() + ttl)

    def get(self, key: str, default=None):
        with self._lock:
            entry = self._get_fresh(key)
            return default if entry is None else entry.value

    def set(self, key: str, value, ttl: float = None) -> None:
        with self._lock:
            self._store(key, value, self.ttl if ttl is None else ttl)

    def get_or_set(
        self,
        key: str,
        compute: Callable[[], Any],
        ttl: float = None,
        timeout: float = None,
    ):
        """Return the cached value for key, computing it at most once.

        Args:
            key: Request fingerprint.
            compute: Zero-arg callable producing the value on a miss.
            ttl: Entry lifetime in seconds. Defaults to the cache TTL.
            timeout: Max seconds to wait on another caller's computation.

        Returns:
            The cached or freshly computed value.

        Raises:
            Whatever `compute` raises; the key is left absent.
            concurrent.futures.TimeoutError: if waiting exceeds `timeout`.
        """
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            entry = self._get_fresh(key)
            if entry is not None:
                self._stats.hits += 1
                return entry.value
            future = self._in_flight.get(key)
            if future is not None:
                self._stats.waits += 1
                is_owner = False
            else:
                self._stats.misses += 1
                future = Future()
                self._in_flight[key] = future
                is_owner = True

        if not is_owner:
            if self.verbose:
                logger.mesg(f"  Cache wait: {key}")
            return future.result(timeout=timeout)

        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                self._stats.failures += 1
                del self._in_flight[key]
            future.set_exception(e)
            logger.warn(f"× Cache fill failed for {key}: {e}")
            raise

        with self._lock:
            self._store(key, value, ttl)
            del self._in_flight[key]
        future.set_result(value)
        if self.verbose:
            logger.mesg(f"  Cache fill: {key}")
        return value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every entry whose key matches the regex `pattern`."""
        regex = re.compile(pattern)
        with self._lock:
            keys = [key for key in self._entries if regex.search(key)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            now = self.clock()
            self._stats.size = sum(
                1 for entry in self._entries.values() if entry.expires_at > now
            )
            self._stats.in_flight = len(self._in_flight)
            return CacheStats(**self._stats.to_dict())
