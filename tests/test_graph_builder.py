import unittest

from tradergraph.core.models import LinkRecord, TraderAggregate
from tradergraph.services.graph_builder import GraphBuilder, rank_traders, whale_threshold


def _aggs(volumes):
    return {addr: TraderAggregate(address=addr, volume=v) for addr, v in volumes.items()}


def _link(src, dst, ts=None) -> LinkRecord:
    return LinkRecord(source=src, target=dst, timestamp=ts, hash=f"{src}{dst}", value=1.0)


class GraphBuilderTests(unittest.TestCase):
    def test_ranks_by_absolute_volume(self) -> None:
        ranked = rank_traders(_aggs({"a": 5, "b": -50, "c": 20}), top_n=10)
        self.assertEqual([a.address for a in ranked], ["b", "c", "a"])

    def test_threshold_at_quarter_rank(self) -> None:
        volumes = {f"t{i}": v for i, v in enumerate([800, -700, 600, 500, 400, -300, 200, 100])}
        ranked = rank_traders(_aggs(volumes), top_n=10)

        # rank floor(8 * 0.25) = 2
        self.assertEqual(whale_threshold(ranked), 600)

        graph = GraphBuilder().build(_aggs(volumes), {})
        self.assertEqual([n.type for n in graph.nodes], ["whale"] * 3 + ["retail"] * 5)

    def test_threshold_for_small_sets_is_half_the_top(self) -> None:
        graph = GraphBuilder().build(_aggs({"a": 10, "b": -4, "c": 6}), {})

        self.assertEqual(whale_threshold(rank_traders(_aggs({"a": 10, "b": -4, "c": 6}), 10)), 5)
        self.assertEqual({n.id: n.type for n in graph.nodes}, {"a": "whale", "c": "whale", "b": "retail"})

    def test_no_retail_ranked_above_a_whale(self) -> None:
        volumes = {f"t{i}": ((-1) ** i) * (i * 7 % 23 + 1) for i in range(30)}
        graph = GraphBuilder().build(_aggs(volumes), {})

        types = [n.type for n in graph.nodes]
        first_retail = types.index("retail")
        self.assertNotIn("whale", types[first_retail:])

    def test_keeps_only_links_between_top_traders(self) -> None:
        aggs = _aggs({"a": 100, "b": -90, "c": 1})
        links = {
            ("a", "b"): _link("a", "b", "2024-01-01T00:00:00.000Z"),
            ("b", "c"): _link("b", "c"),
            ("c", "a"): _link("c", "a"),
        }

        graph = GraphBuilder().build(aggs, links, top_n=2, chain="eth", total_transfers=9, timestamped=4)

        self.assertEqual([n.id for n in graph.nodes], ["a", "b"])
        self.assertEqual([(l.source, l.target) for l in graph.links], [("a", "b")])
        self.assertEqual(graph.chain, "eth")
        s = graph.stats
        self.assertEqual(
            (s.total_transfers, s.timestamped, s.total_traders, s.top_traders, s.total_links, s.timestamped_links),
            (9, 4, 3, 2, 1, 1),
        )

    def test_empty_aggregates(self) -> None:
        graph = GraphBuilder().build({}, {})
        self.assertEqual(graph.nodes, [])
        self.assertEqual(whale_threshold([]), 0.0)


if __name__ == "__main__":
    unittest.main()
