"""Inference cache for resolved series.

This package provides:
- Modern/legacy cache loading resolved once into a tagged ``CacheState``
- Previous-key lookup and legacy promotion per seed
- Cache entry building and serialization
"""

from .inference_cache import (
    build_cache_entry,
    CacheState,
    load_inference_cache,
    lookup_cached_entry,
    lookup_previous_key,
    promote_legacy_entries,
    serialize_cache,
)

__all__ = [
    "CacheState",
    "build_cache_entry",
    "load_inference_cache",
    "lookup_cached_entry",
    "lookup_previous_key",
    "promote_legacy_entries",
    "serialize_cache",
]
