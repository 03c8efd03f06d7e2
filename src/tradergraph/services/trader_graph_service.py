from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Set

from tradergraph.config import settings
from tradergraph.config.chains import TIME_WINDOWS, is_supported_chain, supported_chains
from tradergraph.core.dto import TransferFilter, TransferRecord
from tradergraph.core.errors import InvalidInputError, NoUpstreamActivityError
from tradergraph.core.models import GraphResult, TraderQuery
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.services.aggregator import TraderAggregator
from tradergraph.services.batch_fetcher import BatchFetcher
from tradergraph.services.block_resolver import BlockTimestampResolver
from tradergraph.services.caches import BlockTimestampCache, ResultCache
from tradergraph.services.graph_builder import GraphBuilder, rank_traders
from tradergraph.services.timestamp_enricher import TimestampEnricher

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

ProgressFn = Callable[[str, Dict[str, Any]], None]


def _default_chain_factory(chain: str) -> ChainDataPort:
    from tradergraph.adapters.chain.alchemy_chain_adapter import AlchemyChainAdapter
    return AlchemyChainAdapter(chain=chain)


def no_data_message(chain: str) -> str:
    return f"No valid transfers found for this token on {chain} in the selected time period."


class TraderGraphService:
    """
    Builds the ranked trader graph for one token on one chain.

    Flow: result cache -> activity probe -> block window -> batched fetch ->
    preliminary fold (pick top traders) -> timestamp enrichment (top-trader
    transfers first, then the rest) -> final fold -> graph -> result cache.

    Both caches are process-wide and may be shared between service
    instances; everything else is created per request.
    """

    def __init__(
        self,
        chain_factory: Callable[[str], ChainDataPort] = _default_chain_factory,
        result_cache: Optional[ResultCache] = None,
        block_cache: Optional[BlockTimestampCache] = None,
        top_n: int = settings.TOP_TRADERS,
        batch_size: int = settings.PIPELINE_BATCH_SIZE,
        batch_delay: float = settings.PIPELINE_BATCH_DELAY_SEC,
        fetcher_options: Optional[Dict[str, Any]] = None,
        enricher_options: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.chain_factory = chain_factory
        self.result_cache = result_cache or ResultCache()
        self.block_cache = block_cache or BlockTimestampCache()
        self.top_n = top_n
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.fetcher_options = dict(fetcher_options or {})
        self.enricher_options = dict(enricher_options or {})
        self._sleep = sleep
        self._clock = clock

    def get_traders(self, query: TraderQuery, on_progress: Optional[ProgressFn] = None) -> GraphResult:
        emit = on_progress or (lambda event, data: None)
        query = self._normalize(query)
        chain = query.chain

        cached = self.result_cache.get(query.cache_key)
        if cached is not None:
            logger.info("Serving cached data for %s", query.cache_key)
            return cached

        logger.info("Processing request for %s on %s with time filter: %s", query.address, chain, query.time)
        emit("start", {"address": query.address, "chain": chain, "time": query.time})
        port = self.chain_factory(chain)

        # Activity probe
        probe = port.get_asset_transfers(TransferFilter(contract_address=query.address, max_count=1))
        if not probe.transfers:
            raise NoUpstreamActivityError(f"No recent activity for this token on {chain}")

        # Block window
        from_block = 0
        window = TIME_WINDOWS.get(query.time)
        if window is not None:
            now_ts = int(query.now_ts or self._clock())
            resolver = BlockTimestampResolver(port, self.block_cache)
            from_block = resolver.find_block_near_timestamp(now_ts - window, chain)
            emit("resolve", {"from_block": from_block})

        # Fetch
        emit("fetch", {"from_block": from_block})
        fetcher = BatchFetcher(port, sleep=self._sleep, **self.fetcher_options)
        transfers = fetcher.fetch_all(
            TransferFilter(
                contract_address=query.address,
                from_block=from_block,
                max_count=settings.FETCH_PAGE_SIZE,
            ),
            chain,
        )
        emit("fetch_done", {"count": len(transfers), "truncated": fetcher.last_report.truncated})
        if not transfers:
            return self._empty(chain)

        # Top traders
        aggregator = TraderAggregator()
        preliminary = aggregator.fold(transfers)
        top_n = query.top_n or self.top_n
        ranked = rank_traders(preliminary.aggregates, top_n)
        if not ranked:
            return self._empty(chain)
        top_ids = {agg.address for agg in ranked}

        # Timestamps
        enricher = TimestampEnricher(port, self.block_cache, sleep=self._sleep, **self.enricher_options)
        timestamped = self._enrich(transfers, top_ids, enricher, chain, emit)

        # Final graph
        final = aggregator.fold(transfers)
        result = GraphBuilder(top_n).build(
            final.aggregates,
            final.links,
            chain=chain,
            total_transfers=len(transfers),
            timestamped=timestamped,
            total_traders=len(preliminary.aggregates),
        )

        self.result_cache.put(query.cache_key, result)
        logger.info(
            "Processed %s: %s trader(s), %s link(s), %s/%s timestamped",
            query.cache_key, len(result.nodes), len(result.links), timestamped, len(transfers),
        )
        emit("done", {"nodes": len(result.nodes), "links": len(result.links)})
        return result

    # -------------------------
    # Helpers
    # -------------------------

    def _normalize(self, query: TraderQuery) -> TraderQuery:
        if not is_supported_chain(query.chain):
            raise InvalidInputError(
                f"Invalid chain parameter: {query.chain}",
                supported_chains=supported_chains(),
            )
        if not query.address or not ADDRESS_RE.match(query.address):
            raise InvalidInputError(f"Invalid contract address: {query.address}")

        time_key = query.time if query.time in TIME_WINDOWS else "all"
        if time_key != query.time and query.time != "all":
            logger.warning("Unknown time window %r, using all", query.time)
        return TraderQuery(
            address=query.address.lower(),
            time=time_key,
            chain=query.chain,
            now_ts=query.now_ts,
            top_n=query.top_n,
        )

    def _enrich(
        self,
        transfers: List[TransferRecord],
        top_ids: Set[str],
        enricher: TimestampEnricher,
        chain: str,
        emit: ProgressFn,
    ) -> int:
        for i in range(0, len(transfers), self.batch_size):
            batch = transfers[i:i + self.batch_size]

            relevant = [t for t in batch if t.from_address in top_ids and t.to_address in top_ids]
            if relevant:
                enricher.enrich(relevant, chain)

            tried = {id(t) for t in relevant}
            remaining = [t for t in batch if id(t) not in tried and not t.timestamp]
            if remaining:
                enricher.enrich(remaining, chain)

            done = min(i + self.batch_size, len(transfers))
            emit("enrich", {"done": done, "total": len(transfers)})
            if done < len(transfers):
                self._sleep(self.batch_delay)

        return sum(1 for t in transfers if t.timestamp)

    @staticmethod
    def _empty(chain: str) -> GraphResult:
        return GraphResult.empty(no_data_message(chain), chain=chain)
