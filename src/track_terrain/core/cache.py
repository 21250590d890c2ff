"""Bounded cache of densified terrain keyed by selection and method."""

import logging
from typing import NamedTuple, Optional

from cachetools import LRUCache

from .models import DensificationResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 16


class TerrainCacheKey(NamedTuple):
    track_ids: tuple[str, ...]
    method: str
    density: float
    max_samples: int
    viewport: tuple[float, float]

    @classmethod
    def create(
        cls, track_ids, method: str, density: float, max_samples: int, viewport: tuple[float, float],
    ) -> "TerrainCacheKey":
        """Key independent of selection order."""
        return cls(
            tuple(sorted(track_ids)), method, float(density), int(max_samples),
            (float(viewport[0]), float(viewport[1])),
        )


class TerrainCache:
    """LRU map from TerrainCacheKey to DensificationResult.

    Results are stored as-is; callers must not mutate what they get back.
    """

    def __init__(self, maxsize: int = DEFAULT_CACHE_SIZE):
        self._entries: LRUCache = LRUCache(maxsize=maxsize)
        self.hits = 0
        self.misses = 0

    def get(self, key: TerrainCacheKey) -> Optional[DensificationResult]:
        result = self._entries.get(key)
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        return result

    def put(self, key: TerrainCacheKey, result: DensificationResult) -> None:
        self._entries[key] = result

    def clear(self) -> None:
        if len(self._entries):
            logger.info("Clearing %d cached terrain result(s)", len(self._entries))
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def maxsize(self) -> int:
        return int(self._entries.maxsize)
