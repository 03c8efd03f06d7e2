from __future__ import annotations

from typing import Any, Dict

from tradergraph.core.models import GraphResult, GraphStats, LinkRecord, TxSummary


def _tx_to_dict(t: TxSummary) -> Dict[str, Any]:
    return {"hash": t.hash, "timestamp": t.timestamp, "value": t.value}


def _link_to_dict(link: LinkRecord) -> Dict[str, Any]:
    return {
        "source": link.source,
        "target": link.target,
        "timestamp": link.timestamp,
        "hash": link.hash,
        "value": link.value,
    }


def _stats_to_dict(s: GraphStats) -> Dict[str, Any]:
    # camelCase keys, as the browser client reads them
    return {
        "totalTransfers": s.total_transfers,
        "timestamped": s.timestamped,
        "totalTraders": s.total_traders,
        "topTraders": s.top_traders,
        "totalLinks": s.total_links,
        "timestampedLinks": s.timestamped_links,
    }


def graph_to_dict(g: GraphResult) -> Dict[str, Any]:
    if g.message is not None and g.is_empty:
        return {"nodes": [], "links": [], "message": g.message}

    out: Dict[str, Any] = {
        "nodes": [
            {
                "id": n.id,
                "volume": n.volume,
                "type": n.type,
                "transactions": [_tx_to_dict(t) for t in n.transactions],
            }
            for n in g.nodes
        ],
        "links": [_link_to_dict(link) for link in g.links],
        "chain": g.chain,
    }
    if g.stats is not None:
        out["stats"] = _stats_to_dict(g.stats)
    return out
