from __future__ import annotations

from promriak.api.caching.cache_cell import CacheCell, CachedEntry

__all__ = ["CacheCell", "CachedEntry"]
