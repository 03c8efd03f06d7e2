from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Set

from tradergraph.config import settings
from tradergraph.core.dto import BlockTimestampEntry, TransferRecord
from tradergraph.core.outcomes import BatchReport
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.services.block_resolver import lookup_block_timestamp
from tradergraph.services.caches import BlockTimestampCache
from tradergraph.services.worker_pool import BoundedWorkerPool

logger = logging.getLogger(__name__)


class TimestampEnricher:
    """
    Fills `timestamp` on transfers from their block, best effort.

    1. Distinct block numbers are split into cached and missing; missing ones
       are fetched in chunks, `concurrency` at a time, and cached as they land.
    2. Timestamps are written back onto every transfer in that block.
    3. Recovery: transfers still undated but with a hash are looked up by
       transaction to find their block. The recovery budget is shared by all
       `enrich` calls on one instance, so one instance serves one request, and
       a hash is looked up at most once per instance.
    """

    def __init__(
        self,
        chain: ChainDataPort,
        cache: BlockTimestampCache,
        chunk_size: int = settings.ENRICH_CHUNK_SIZE,
        concurrency: int = settings.ENRICH_CONCURRENCY,
        group_delay: float = settings.ENRICH_GROUP_DELAY_SEC,
        chunk_delay: float = settings.ENRICH_CHUNK_DELAY_SEC,
        max_recovery: int = settings.RECOVERY_MAX_TRANSFERS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.chain = chain
        self.cache = cache
        self.chunk_size = chunk_size
        self.group_delay = group_delay
        self.chunk_delay = chunk_delay
        self.max_recovery = max_recovery
        self._sleep = sleep
        self._pool = BoundedWorkerPool(concurrency, name="enrich")
        self.recovery_used = 0
        self.recovered = 0
        self._tried_hashes: Set[str] = set()
        self.last_report = BatchReport()

    def enrich(self, transfers: List[TransferRecord], chain: Optional[str] = None) -> List[TransferRecord]:
        if not transfers:
            return transfers
        chain_key = chain or self.chain.chain
        report = BatchReport()
        self.last_report = report

        resolved: Dict[int, BlockTimestampEntry] = {}
        to_fetch: List[int] = []
        for block_number in sorted({t.block_number for t in transfers if t.block_number is not None}):
            entry = self.cache.get(chain_key, block_number)
            if entry is not None:
                resolved[block_number] = entry
            else:
                to_fetch.append(block_number)

        if to_fetch:
            resolved.update(self._fetch_blocks(to_fetch, chain_key, report))

        for t in transfers:
            if t.block_number is None:
                continue
            entry = resolved.get(t.block_number)
            if entry is not None:
                t.timestamp = entry.iso_timestamp

        self._recover(transfers, chain_key, report)

        logger.info(
            "Enriched %s/%s transfer(s) on %s (%s block(s) fetched, %s failed)",
            sum(1 for t in transfers if t.timestamp), len(transfers), chain_key,
            len(to_fetch), report.failed,
        )
        return transfers

    # -------------------------
    # Phases
    # -------------------------

    def _fetch_blocks(
        self,
        block_numbers: List[int],
        chain_key: str,
        report: BatchReport,
    ) -> Dict[int, BlockTimestampEntry]:
        out: Dict[int, BlockTimestampEntry] = {}
        group_size = self._pool.permits

        def fetch_one(block_number: int) -> Optional[BlockTimestampEntry]:
            return lookup_block_timestamp(self.chain, self.cache, block_number, chain_key)

        for i in range(0, len(block_numbers), self.chunk_size):
            chunk = block_numbers[i:i + self.chunk_size]
            for j in range(0, len(chunk), group_size):
                outcomes = self._pool.run_group(fetch_one, chunk[j:j + group_size])
                report.extend(outcomes)
                report.groups += 1
                for o in outcomes:
                    if o.ok:
                        out[o.key] = o.value
                if j + group_size < len(chunk):
                    self._sleep(self.group_delay)
            if i + self.chunk_size < len(block_numbers):
                self._sleep(self.chunk_delay)

        return out

    def _recover(self, transfers: List[TransferRecord], chain_key: str, report: BatchReport) -> None:
        pending = [
            t for t in transfers
            if not t.timestamp and t.tx_hash and t.tx_hash not in self._tried_hashes
        ]
        if not pending:
            return

        budget = max(0, self.max_recovery - self.recovery_used)
        if len(pending) > budget:
            report.truncated = True
            logger.info(
                "Recovery cap reached on %s: %s undated transfer(s) left as-is",
                chain_key, len(pending) - budget,
            )
        pending = pending[:budget]
        if not pending:
            return
        self.recovery_used += len(pending)

        hashes = list(dict.fromkeys(t.tx_hash for t in pending))
        self._tried_hashes.update(hashes)

        def recover_one(tx_hash: str) -> Optional[BlockTimestampEntry]:
            tx = self.chain.get_transaction(tx_hash)
            if tx is None or tx.block_number is None:
                return None
            return lookup_block_timestamp(self.chain, self.cache, tx.block_number, chain_key)

        found: Dict[str, BlockTimestampEntry] = {}
        group_size = self._pool.permits
        for i in range(0, len(hashes), group_size):
            outcomes = self._pool.run_group(recover_one, hashes[i:i + group_size])
            report.extend(outcomes)
            report.groups += 1
            for o in outcomes:
                if o.ok:
                    found[o.key] = o.value
            if i + group_size < len(hashes):
                self._sleep(self.group_delay)

        for t in pending:
            entry = found.get(t.tx_hash)
            if entry is None:
                continue
            t.block_number = entry.block_number
            t.timestamp = entry.iso_timestamp
            self.recovered += 1
