from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from tradergraph.config import settings
from tradergraph.core.dto import BlockTimestampEntry
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.services.caches import BlockTimestampCache

logger = logging.getLogger(__name__)


def lookup_block_timestamp(
    chain: ChainDataPort,
    cache: BlockTimestampCache,
    block_number: int,
    chain_key: Optional[str] = None,
) -> Optional[BlockTimestampEntry]:
    """
    Cached block timestamp, fetching and caching it on a miss.
    Returns None when the provider has no usable block; fetch errors propagate.
    """
    key = chain_key or chain.chain
    entry = cache.get(key, block_number)
    if entry is not None:
        return entry

    block = chain.get_block(block_number)
    if block is None or not block.timestamp:
        return None

    entry = BlockTimestampEntry.from_block(block)
    cache.put(key, entry)
    return entry


class BlockTimestampResolver:
    """
    Finds the block whose timestamp is closest to a target unix time.

    Binary search over [0, latest]. The best candidate seen so far is kept,
    so the answer is usable even when the probe budget runs out or some
    probes fail. A failed probe moves the lower bound up.
    """

    def __init__(
        self,
        chain: ChainDataPort,
        cache: BlockTimestampCache,
        max_iterations: int = settings.RESOLVER_MAX_ITERATIONS,
    ) -> None:
        self.chain = chain
        self.cache = cache
        self.max_iterations = max_iterations
        self.probes: List[Tuple[int, int]] = []

    def find_block_near_timestamp(self, target_ts: int, chain: Optional[str] = None) -> int:
        chain_key = chain or self.chain.chain
        self.probes = []

        low = 0
        high = self.chain.get_latest_block_number()
        best_block = high
        best_diff: Optional[int] = None
        iterations = 0

        while low <= high and iterations < self.max_iterations:
            iterations += 1
            mid = (low + high) // 2

            try:
                entry = lookup_block_timestamp(self.chain, self.cache, mid, chain_key)
            except Exception as e:
                logger.warning("Block probe %s on %s failed: %s", mid, chain_key, e)
                low = mid + 1
                continue

            if entry is None:
                low = mid + 1
                continue

            block_ts = entry.unix_timestamp
            self.probes.append((mid, block_ts))

            diff = abs(block_ts - target_ts)
            if best_diff is None or diff < best_diff:
                best_diff = diff
                best_block = mid

            if block_ts > target_ts:
                high = mid - 1
            elif block_ts < target_ts:
                low = mid + 1
            else:
                break

        logger.info(
            "Resolved ts %s on %s to block %s after %s probe(s)",
            target_ts, chain_key, best_block, iterations,
        )
        return best_block
