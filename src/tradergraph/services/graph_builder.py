from __future__ import annotations

from typing import List, Mapping, Optional, Sequence, Tuple

from tradergraph.config import settings
from tradergraph.core.models import (
    GraphNode,
    GraphResult,
    GraphStats,
    LinkRecord,
    TraderAggregate,
)

WHALE = "whale"
RETAIL = "retail"


def rank_traders(aggregates: Mapping[str, TraderAggregate], top_n: int) -> List[TraderAggregate]:
    # stable: ties keep first-seen order
    ranked = sorted(aggregates.values(), key=lambda a: abs(a.volume), reverse=True)
    return ranked[:top_n]


def whale_threshold(ranked: Sequence[TraderAggregate]) -> float:
    """
    |volume| at the 25th-percentile rank, or half the top trader's
    |volume| when fewer than four traders are ranked.
    """
    if not ranked:
        return 0.0
    if len(ranked) >= 4:
        return abs(ranked[int(len(ranked) * 0.25)].volume)
    return abs(ranked[0].volume) / 2


class GraphBuilder:

    def __init__(self, top_n: int = settings.TOP_TRADERS) -> None:
        self.top_n = top_n

    def build(
        self,
        aggregates: Mapping[str, TraderAggregate],
        links: Mapping[Tuple[str, str], LinkRecord],
        top_n: Optional[int] = None,
        chain: Optional[str] = None,
        total_transfers: int = 0,
        timestamped: int = 0,
        total_traders: Optional[int] = None,
    ) -> GraphResult:
        ranked = rank_traders(aggregates, top_n or self.top_n)
        threshold = whale_threshold(ranked)

        nodes = [
            GraphNode(
                id=agg.address,
                volume=agg.volume,
                type=WHALE if abs(agg.volume) >= threshold else RETAIL,
                transactions=list(agg.transactions),
            )
            for agg in ranked
        ]

        valid_ids = {n.id for n in nodes}
        kept: List[LinkRecord] = [
            link for link in links.values()
            if link.source in valid_ids and link.target in valid_ids
        ]

        stats = GraphStats(
            total_transfers=total_transfers,
            timestamped=timestamped,
            total_traders=len(aggregates) if total_traders is None else total_traders,
            top_traders=len(nodes),
            total_links=len(kept),
            timestamped_links=sum(1 for link in kept if link.timestamp is not None),
        )
        return GraphResult(nodes=nodes, links=kept, chain=chain, stats=stats)
