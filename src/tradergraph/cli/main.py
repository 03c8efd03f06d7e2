from __future__ import annotations

import argparse
import datetime as dt
import logging
import os
import sys
import time

from tradergraph.config import settings
from tradergraph.config.chains import TIME_WINDOWS, supported_chains
from tradergraph.core.errors import TraderGraphError
from tradergraph.core.models import TraderQuery
from tradergraph.services.trader_graph_service import TraderGraphService
from tradergraph.io.output_writer import write_graph_json, write_summary_md

from tradergraph.adapters.chain.alchemy_chain_adapter import AlchemyChainAdapter
from tradergraph.adapters.chain.static_chain_adapter import StaticChainAdapter


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tradergraph", description="Token trader graph (ERC-20 transfers)")
    p.add_argument("--address", required=False, help="Token contract address")
    p.add_argument("--time", default="all", choices=["all", *TIME_WINDOWS.keys()], help="Lookback window")
    p.add_argument("--chain", default=settings.DEFAULT_CHAIN, help=f"Chain key ({', '.join(supported_chains())})")
    p.add_argument("--top", type=int, default=0, help="Number of top traders to keep (0=default)")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--use-static", action="store_true", help="Use static adapter (dev/testing)")
    p.add_argument("--serve", action="store_true", help="Run the HTTP API instead of a one-off query")
    p.add_argument("--port", type=int, default=settings.API_PORT, help="HTTP port for --serve")
    return p


def _make_progress_reporter(query: TraderQuery):
    start_time = time.time()
    is_tty = sys.stdout.isatty()

    def _ts() -> str:
        return dt.datetime.now().strftime("%H:%M:%S")

    def _print_line(message: str) -> None:
        if is_tty:
            sys.stdout.write("\r" + message.ljust(88))
            sys.stdout.flush()
        else:
            print(message)

    def _clear_line() -> None:
        if is_tty:
            sys.stdout.write("\r" + (" " * 88) + "\r")
            sys.stdout.flush()

    def progress(event: str, data: dict) -> None:
        if event == "start":
            print(f"[{_ts()}] Traders of {query.address} • {query.chain} • {query.time}")
            return
        if event == "resolve":
            _print_line(f"Window starts at block {data.get('from_block')}")
            return
        if event == "fetch":
            _print_line("Fetching transfers...")
            return
        if event == "fetch_done":
            suffix = " (truncated)" if data.get("truncated") else ""
            _print_line(f"Fetched {data.get('count', 0)} transfer(s){suffix}")
            return
        if event == "enrich":
            _print_line(f"Timestamps... {data.get('done', 0)}/{data.get('total', 0)}")
            return
        if event == "done":
            _clear_line()
            elapsed = time.time() - start_time
            print(
                f"[{_ts()}] Done in {elapsed:.1f}s • "
                f"{data['nodes']} traders • {data['links']} links"
            )
            return
        if event == "error":
            _clear_line()
            print(f"[{_ts()}] Error: {data.get('message', 'Unknown error')}", file=sys.stderr)

    return progress


def main() -> int:
    args = build_arg_parser().parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL)

    if args.serve:
        from tradergraph.api.app import main as serve
        serve(port=args.port)
        return 0

    if not args.address:
        print("Missing --address", file=sys.stderr)
        return 2

    query = TraderQuery(address=args.address, time=args.time, chain=args.chain, top_n=args.top)
    progress = _make_progress_reporter(query)

    # Ports
    if args.use_static:
        chain_factory = lambda chain: StaticChainAdapter(chain=chain)
        adapter_label = "StaticChainAdapter (dev/testing)"
    else:
        # Alchemy key should come from env or .env file
        if not os.getenv("ALCHEMY_API_KEY"):
            progress("error", {"message": "Missing ALCHEMY_API_KEY environment variable"})
            return 2
        chain_factory = lambda chain: AlchemyChainAdapter(chain=chain)
        adapter_label = "AlchemyChainAdapter"

    svc = TraderGraphService(chain_factory=chain_factory)
    print(f"Adapter: {adapter_label}")
    try:
        graph = svc.get_traders(query, on_progress=progress)
    except TraderGraphError as exc:
        progress("error", {"message": f"{exc.__class__.__name__}: {exc}"})
        return 1

    # Outputs
    print("Writing outputs...")
    graph_path = write_graph_json(graph, args.out)
    summary_path = write_summary_md(graph, args.out, token_address=query.address)

    print(f"Wrote: {graph_path}")
    print(f"Wrote: {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
