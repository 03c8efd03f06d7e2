import unittest

from tradergraph.adapters.chain.static_chain_adapter import StaticChainAdapter
from tradergraph.api.app import create_app
from tradergraph.core.dto import TransferRecord
from tradergraph.core.errors import DataSourceError
from tradergraph.services.trader_graph_service import TraderGraphService

TOKEN = "0x" + "cd" * 20


class _BrokenChain(StaticChainAdapter):
    def get_asset_transfers(self, flt, page_key=None):
        raise DataSourceError("Alchemy alchemy_getAssetTransfers failed after retries")


def _static_chain() -> StaticChainAdapter:
    return StaticChainAdapter(
        transfers=[
            TransferRecord("0x1", "0xaaaa", "0xbbbb", value=5.0, block_number=3),
            TransferRecord("0x2", "0xbbbb", "0xcccc", value=2.0, block_number=4),
        ],
        block_timestamps={3: 1700000000, 4: 1700000012},
    )


class ApiTests(unittest.TestCase):
    def _client(self, chain_factory):
        svc = TraderGraphService(chain_factory=chain_factory, sleep=lambda s: None)
        app = create_app(svc)
        app.config["TESTING"] = True
        return app.test_client()

    def test_chains(self) -> None:
        resp = self._client(lambda c: _static_chain()).get("/api/chains")

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body["defaultChain"], "eth")
        self.assertIn("bnb", body["supportedChains"])

    def test_traders_ok(self) -> None:
        resp = self._client(lambda c: _static_chain()).get(f"/api/traders?address={TOKEN}&time=all&chain=eth")

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual([n["id"] for n in body["nodes"]], ["0xaaaa", "0xbbbb", "0xcccc"])
        self.assertEqual(body["chain"], "eth")
        self.assertEqual(body["stats"]["totalTransfers"], 2)
        self.assertEqual(body["stats"]["timestamped"], 2)
        self.assertEqual(len(body["links"]), 2)
        self.assertIn(body["nodes"][0]["type"], ("whale", "retail"))

    def test_repeat_request_returns_identical_body(self) -> None:
        client = self._client(lambda c: _static_chain())
        url = f"/api/traders?address={TOKEN}&time=24h"

        first = client.get(url).data
        second = client.get(url).data

        self.assertEqual(first, second)

    def test_unknown_chain_is_400_with_supported_list(self) -> None:
        resp = self._client(lambda c: _static_chain()).get(f"/api/traders?address={TOKEN}&chain=doge")

        self.assertEqual(resp.status_code, 400)
        body = resp.get_json()
        self.assertEqual(body["error"], "Invalid chain parameter")
        self.assertIn("eth", body["supportedChains"])

    def test_bad_address_is_400(self) -> None:
        resp = self._client(lambda c: _static_chain()).get("/api/traders?address=nope")
        self.assertEqual(resp.status_code, 400)

    def test_no_activity_is_400(self) -> None:
        resp = self._client(lambda c: StaticChainAdapter()).get(f"/api/traders?address={TOKEN}&chain=bnb")

        self.assertEqual(resp.status_code, 400)
        self.assertIn("No recent activity", resp.get_json()["error"])

    def test_upstream_failure_is_500_with_details(self) -> None:
        resp = self._client(lambda c: _BrokenChain()).get(f"/api/traders?address={TOKEN}")

        self.assertEqual(resp.status_code, 500)
        body = resp.get_json()
        self.assertEqual(body["error"], "Failed to fetch trader data on eth")
        self.assertIn("failed after retries", body["details"])

    def test_health_and_memory(self) -> None:
        client = self._client(lambda c: _static_chain())

        health = client.get("/health")
        self.assertEqual(health.status_code, 200)
        self.assertEqual(health.data, b"OK")

        memory = client.get("/memory").get_json()
        self.assertEqual(memory["cacheStats"]["requestCacheSize"], 0)


if __name__ == "__main__":
    unittest.main()
