from __future__ import annotations

import time
from typing import Callable, Optional

from tradergraph.config import settings
from tradergraph.core.dto import BlockTimestampEntry
from tradergraph.core.models import GraphResult
from tradergraph.core.ttl_cache import TTLCache


class BlockTimestampCache:
    """
    Long-lived block -> timestamp cache shared by every resolver/enricher.
    """

    def __init__(
        self,
        ttl: float = settings.BLOCK_CACHE_TTL_SEC,
        check_period: float = settings.BLOCK_CACHE_CHECK_PERIOD_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[BlockTimestampEntry] = TTLCache(ttl, check_period, clock)

    @staticmethod
    def key(chain: str, block_number: int) -> str:
        return f"block-{chain}-{int(block_number)}"

    def get(self, chain: str, block_number: int) -> Optional[BlockTimestampEntry]:
        return self._cache.get(self.key(chain, block_number))

    def put(self, chain: str, entry: BlockTimestampEntry) -> None:
        self._cache.set(self.key(chain, entry.block_number), entry)

    def __len__(self) -> int:
        return len(self._cache)


class ResultCache:
    """
    Short-lived cache of finished graphs keyed by chain, token and window.
    """

    def __init__(
        self,
        ttl: float = settings.RESULT_CACHE_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[GraphResult] = TTLCache(ttl, check_period=ttl, clock=clock)

    def get(self, key: str) -> Optional[GraphResult]:
        return self._cache.get(key)

    def put(self, key: str, result: GraphResult) -> None:
        self._cache.set(key, result)

    def __len__(self) -> int:
        return len(self._cache)
