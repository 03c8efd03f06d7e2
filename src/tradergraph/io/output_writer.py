from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from tradergraph.core.models import GraphResult
from tradergraph.io.schemas import graph_to_dict


def write_graph_json(graph: GraphResult, out_dir: str, filename: str = "graph.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(graph_to_dict(graph), f, indent=2)

    return str(out_path)


def write_summary_md(
    graph: GraphResult,
    out_dir: str,
    filename: str = "summary.md",
    token_address: Optional[str] = None,
) -> str:
    """
    Minimal, analyst-friendly summary of a trader graph.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename

    whales = [n for n in graph.nodes if n.type == "whale"]
    retail = [n for n in graph.nodes if n.type == "retail"]
    top_links = sorted(graph.links, key=lambda link: link.value, reverse=True)[:15]

    def fmt_amount(x: float) -> str:
        return f"{x:,.4f}"

    def short(addr: str) -> str:
        return addr if len(addr) <= 14 else f"{addr[:10]}..."

    def interpretation() -> str:
        if not graph.nodes:
            return "No trader activity was found for this token in the selected window."
        net_in = sum(n.volume for n in whales if n.volume > 0)
        net_out = -sum(n.volume for n in whales if n.volume < 0)
        if net_in > net_out * 2:
            return (
                "Whales are net accumulators: the largest addresses received "
                "far more than they sent during the window."
            )
        if net_out > net_in * 2:
            return (
                "Whales are net distributors: the largest addresses sent "
                "far more than they received during the window."
            )
        return (
            "Whale flows are roughly balanced, which often matches active "
            "market making or routine rebalancing."
        )

    lines = []
    lines.append("# Trader Graph Summary\n")
    if token_address:
        lines.append(f"- Token: **{token_address.lower()}**\n")
    if graph.chain:
        lines.append(f"- Chain: **{graph.chain}**\n")
    lines.append(f"- Traders: **{len(graph.nodes)}** ({len(whales)} whale / {len(retail)} retail)\n")
    lines.append(f"- Links: **{len(graph.links)}**\n")
    if graph.stats is not None:
        s = graph.stats
        lines.append(f"- Transfers fetched: **{s.total_transfers}** ({s.timestamped} timestamped)\n")
        lines.append(f"- Distinct traders seen: **{s.total_traders}**\n")
    if graph.message:
        lines.append(f"\n_{graph.message}_\n")
    lines.append("\n")

    lines.append("## Top 10 Traders (by net volume)\n\n")
    if not graph.nodes:
        lines.append("_No traders found in the selected window._\n\n")
    else:
        for n in graph.nodes[:10]:
            lines.append(f"- **{fmt_amount(n.volume)}** | {n.type} | {n.id}\n")
        lines.append("\n")

    lines.append("## Interpretation\n\n")
    lines.append(f"{interpretation()}\n\n")

    lines.append("## Limitations / Next steps\n\n")
    lines.append("- Only ERC-20 transfers of the token contract are included.\n")
    lines.append("- Volume is net flow per address, not gross turnover.\n")
    lines.append("- Each link shows the latest transfer between a pair, not their sum.\n")
    lines.append("- Timestamps are best-effort and may be missing on some transfers.\n")
    lines.append("- Very active tokens are truncated at the fetch ceilings.\n\n")

    lines.append("## Top Links (by latest transfer value)\n\n")
    if not top_links:
        lines.append("_No links between top traders._\n")
    else:
        for link in top_links:
            when = link.timestamp or "unknown time"
            lines.append(
                f"- **{fmt_amount(link.value)}** "
                f"| {short(link.source)} -> {short(link.target)} "
                f"| {when} | tx: {link.hash}\n"
            )

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
