from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from tradergraph.config import settings
from tradergraph.core.dto import TransferFilter, TransferPage, TransferRecord
from tradergraph.core.errors import DataSourceError
from tradergraph.core.outcomes import BatchReport
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.services.worker_pool import BoundedWorkerPool

logger = logging.getLogger(__name__)


class BatchFetcher:
    """
    Paginated transfer retrieval in small groups.

    Page tokens form one chain, so each page is requested exactly once and
    only after the previous page has returned. A group walks up to
    `group_size` pages, then the fetcher waits an adaptive delay before the
    next group. A failed request ends the chain. Fetching stops at
    `max_groups` groups or `max_records` records, whichever comes first; the
    records gathered so far are always a contiguous run from `from_block`.
    """

    def __init__(
        self,
        chain: ChainDataPort,
        group_size: int = settings.FETCH_GROUP_SIZE,
        max_groups: int = settings.FETCH_MAX_GROUPS,
        max_records: int = settings.FETCH_MAX_RECORDS,
        base_delay: float = settings.FETCH_BASE_DELAY_SEC,
        max_extra_delay: float = settings.FETCH_MAX_EXTRA_DELAY_SEC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if group_size < 1:
            raise ValueError("group_size must be >= 1")
        self.chain = chain
        self.group_size = group_size
        self.max_groups = max_groups
        self.max_records = max_records
        self.base_delay = base_delay
        self.max_extra_delay = max_extra_delay
        self._sleep = sleep
        # the next page needs the previous token: one request in flight
        self._pool = BoundedWorkerPool(1, name="fetch")
        self.last_report = BatchReport()

    def delay_for(self, record_count: int) -> float:
        # +1ms per 100 records, capped
        return self.base_delay + min(record_count / 100_000.0, self.max_extra_delay)

    def fetch_all(self, flt: TransferFilter, chain: Optional[str] = None) -> List[TransferRecord]:
        chain_key = chain or self.chain.chain
        report = BatchReport()
        self.last_report = report

        def fetch_page(page_key: Optional[str]) -> Optional[TransferPage]:
            return self.chain.get_asset_transfers(flt, page_key)

        transfers: List[TransferRecord] = []
        page_key: Optional[str] = None
        more = True

        while more and report.groups < self.max_groups:
            group_ok = 0
            for _ in range(self.group_size):
                outcome = self._pool.run_group(fetch_page, [page_key])[0]
                report.extend([outcome])
                if not outcome.ok:
                    more = False
                    break
                group_ok += 1
                page: TransferPage = outcome.value
                transfers.extend(page.transfers)
                page_key = page.page_key
                if page_key is None or len(transfers) >= self.max_records:
                    more = page_key is not None
                    break
            report.groups += 1

            if report.groups == 1 and group_ok == 0:
                reasons = "; ".join(o.reason or "" for o in report.failures())
                raise DataSourceError(f"Transfer fetch failed on {chain_key}: {reasons}")

            if not more:
                break
            if len(transfers) >= self.max_records:
                report.truncated = True
                logger.warning("Record ceiling reached on %s: %s transfers, later blocks dropped",
                               chain_key, len(transfers))
                break
            if report.groups >= self.max_groups:
                report.truncated = True
                logger.warning("Group ceiling reached on %s: %s group(s), later blocks dropped",
                               chain_key, report.groups)
                break
            self._sleep(self.delay_for(len(transfers)))

        logger.info(
            "Fetched %s transfer(s) on %s in %s group(s) (%s failed request(s))",
            len(transfers), chain_key, report.groups, report.failed,
        )
        return transfers
