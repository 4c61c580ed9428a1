"""
Cache package for per-resource API payloads.

This package provides:
- ResourceCacheStore (store.py): the in-process store with staleness,
  in-flight state, invalidation and teardown
"""

from stitch.cache.store import DEFAULT_TTL_MS, ResourceCacheStore

__all__ = ["DEFAULT_TTL_MS", "ResourceCacheStore"]
