"""
Caches Module - Short-TTL Result Cache

Memoizes computed feed pages and profile aggregates for a short window so
that bursts of identical requests do not recompute the same ranking.

- **Read-through**: `get_or_set(key, compute)` returns a fresh entry or runs
  `compute` and stores its result.
- **Single-flight**: concurrent misses on one key share a single in-flight
  computation; other keys proceed independently.
- **No poisoning**: a failed computation is never stored; every waiter gets
  the exception and the next request retries.
- **TTL expiry**: entries expire after CACHE_TTL_SECONDS (60s). Engagement
  counts change continuously, so near-real-time staleness is acceptable.

Module Structure:
    - result_cache.py: ResultCache, CacheStats, build_fingerprint

Usage:
    from caches.result_cache import ResultCache, build_fingerprint
    cache = ResultCache()
    key = build_fingerprint("feed", viewer_id="u1", cursor=None, limit=20)
    page = cache.get_or_set(key, lambda: ranker.rank_posts(posts, authors, viewer))
"""
