import unittest

from tradergraph.adapters.chain.static_chain_adapter import StaticChainAdapter
from tradergraph.core.dto import BlockTimestampEntry, TransferRecord, iso_from_unix
from tradergraph.core.errors import DataSourceError
from tradergraph.services.caches import BlockTimestampCache
from tradergraph.services.timestamp_enricher import TimestampEnricher


class _CountingChain(StaticChainAdapter):
    def __init__(self, fail_blocks=None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_blocks = set(fail_blocks or [])
        self.block_calls = []
        self.tx_calls = []

    def get_block(self, number):
        self.block_calls.append(number)
        if number in self.fail_blocks:
            raise DataSourceError(f"block {number} timed out")
        return super().get_block(number)

    def get_transaction(self, tx_hash):
        self.tx_calls.append(tx_hash)
        return super().get_transaction(tx_hash)


def _tx(tx_hash: str, block=None) -> TransferRecord:
    return TransferRecord(
        tx_hash=tx_hash,
        from_address="0xaaaa",
        to_address="0xbbbb",
        value=1.0,
        block_number=block,
    )


class TimestampEnricherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sleeps = []
        self.cache = BlockTimestampCache()

    def _enricher(self, chain, **overrides) -> TimestampEnricher:
        return TimestampEnricher(chain, self.cache, sleep=self.sleeps.append, **overrides)

    def test_iso_format(self) -> None:
        self.assertEqual(iso_from_unix(1700000000), "2023-11-14T22:13:20.000Z")

    def test_uses_cache_and_fetches_only_missing_blocks(self) -> None:
        chain = _CountingChain(block_timestamps={10: 1700000000, 11: 1700000012})
        self.cache.put("eth", BlockTimestampEntry(10, 1700000000, iso_from_unix(1700000000)))
        transfers = [_tx("0x1", 10), _tx("0x2", 10), _tx("0x3", 11)]

        out = self._enricher(chain).enrich(transfers, "eth")

        self.assertIs(out, transfers)
        self.assertEqual(chain.block_calls, [11])
        self.assertEqual(transfers[0].timestamp, "2023-11-14T22:13:20.000Z")
        self.assertEqual(transfers[1].timestamp, transfers[0].timestamp)
        self.assertEqual(transfers[2].timestamp, "2023-11-14T22:13:32.000Z")
        self.assertIsNotNone(self.cache.get("eth", 11))

    def test_recovers_block_from_transaction_hash(self) -> None:
        chain = _CountingChain(
            block_timestamps={12: 1700000024},
            tx_blocks={"0xr": 12},
        )
        transfers = [_tx("0xr")]
        enricher = self._enricher(chain)

        enricher.enrich(transfers, "eth")

        self.assertEqual(transfers[0].block_number, 12)
        self.assertEqual(transfers[0].timestamp, iso_from_unix(1700000024))
        self.assertEqual(enricher.recovered, 1)
        self.assertIsNotNone(self.cache.get("eth", 12))

    def test_failed_block_falls_back_to_recovery_then_stays_undated(self) -> None:
        chain = _CountingChain(
            fail_blocks={13},
            block_timestamps={13: 1700000036},
            tx_blocks={"0xf": 13},
        )
        transfers = [_tx("0xf", 13), _tx("0xg", 14)]
        enricher = self._enricher(chain)

        enricher.enrich(transfers, "eth")

        self.assertIsNone(transfers[0].timestamp)
        self.assertIsNone(transfers[1].timestamp)
        self.assertGreaterEqual(enricher.last_report.failed, 1)
        self.assertEqual(sorted(chain.tx_calls), ["0xf", "0xg"])

    def test_recovery_is_capped_per_instance(self) -> None:
        tx_blocks = {f"0x{i}": 20 for i in range(5)}
        chain = _CountingChain(block_timestamps={20: 1700000100}, tx_blocks=tx_blocks)
        transfers = [_tx(h) for h in tx_blocks]
        enricher = self._enricher(chain, max_recovery=2)

        enricher.enrich(transfers, "eth")

        dated = [t for t in transfers if t.timestamp]
        self.assertEqual(len(dated), 2)
        self.assertTrue(enricher.last_report.truncated)

        # budget is spent; a second call recovers nothing more
        enricher.enrich(transfers, "eth")
        self.assertEqual(len([t for t in transfers if t.timestamp]), 2)
        self.assertEqual(len(chain.tx_calls), 2)

    def test_hash_is_looked_up_once_per_instance(self) -> None:
        chain = _CountingChain()
        transfers = [_tx("0x1", 10), _tx("0x2", 10)]
        enricher = self._enricher(chain, max_recovery=10)

        enricher.enrich(transfers, "eth")
        enricher.enrich(transfers, "eth")

        self.assertEqual(sorted(chain.tx_calls), ["0x1", "0x2"])
        self.assertEqual(enricher.recovery_used, 2)
        self.assertIsNone(transfers[0].timestamp)

    def test_missing_blocks_are_fetched_in_delayed_groups(self) -> None:
        blocks = {n: 1700000000 + n for n in range(12)}
        chain = _CountingChain(block_timestamps=blocks)
        transfers = [_tx(f"0x{n}", n) for n in range(12)]

        self._enricher(chain, chunk_size=5, concurrency=2).enrich(transfers, "eth")

        self.assertTrue(all(t.timestamp for t in transfers))
        self.assertEqual(sorted(chain.block_calls), list(range(12)))
        self.assertEqual(self.sleeps.count(0.05), 4)
        self.assertEqual(self.sleeps.count(0.15), 2)

    def test_empty_input(self) -> None:
        chain = _CountingChain()
        self.assertEqual(self._enricher(chain).enrich([], "eth"), [])
        self.assertEqual(chain.block_calls, [])


if __name__ == "__main__":
    unittest.main()
