"""Bounded in-memory cache of analysis results.

The cache is an explicit object owned by the caller: an optimization run
creates its own, and a host that wants reuse across requests keeps one and
passes it in. Keys combine the composition hash and format, so a result is
only ever reused for the exact deck and format it was computed for.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Generic, TypeVar

from pydantic import BaseModel

from .config import get_settings
from .data.models.deck import DeckComposition
from .data.models.responses import AnalysisResult

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def analysis_cache_key(composition: DeckComposition, format_name: str) -> str:
    """Cache key for a composition in a format."""
    return composition.fingerprint(format_name)


class LRUCache(Generic[T]):
    """Thread-safe LRU mapping from cache key to pydantic model."""

    def __init__(self, max_size: int | None = None):
        self.max_size = max_size or get_settings().analysis_cache_max_size
        self._entries: OrderedDict[str, T] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> T | None:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted[:12])

    def invalidate(self, key: str) -> bool:
        """Drop one entry; returns whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
        }


class AnalysisCache(LRUCache[AnalysisResult]):
    """LRU cache of analysis results keyed by (composition hash, format)."""

    def lookup(self, composition: DeckComposition, format_name: str) -> AnalysisResult | None:
        return self.get(analysis_cache_key(composition, format_name))

    def store(self, composition: DeckComposition, format_name: str, result: AnalysisResult) -> None:
        self.put(analysis_cache_key(composition, format_name), result)
