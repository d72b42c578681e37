import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests
from web3 import Web3

from rpadmin.artifacts import ArtifactStore, parse_artifact
from rpadmin.config import AdminConfig
from rpadmin.errors import UnknownContract, UnknownNetwork, UsageError
from rpadmin.resolver import NetworkResolver

from fakes import ADDRESSES, NETWORK_ID, FakeChain, write_artifacts


class TestNetworkResolver(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = write_artifacts(Path(self._tmp.name))
        self.chain = FakeChain()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _resolver(self, network_id=None) -> NetworkResolver:
        return NetworkResolver(AdminConfig(network_id=network_id), self.chain, ArtifactStore(str(self.dir)))

    async def test_resolves_checksummed_address(self) -> None:
        ref = await self._resolver().resolve("RocketAdmin")
        self.assertEqual(ref.address, Web3.to_checksum_address(ADDRESSES["RocketAdmin"]))
        self.assertEqual(ref.network_id, NETWORK_ID)
        self.assertTrue(ref.abi)

    async def test_network_id_queried_once_and_refs_cached(self) -> None:
        resolver = self._resolver()
        first = await resolver.resolve("RocketAdmin")
        second = await resolver.resolve("RocketAdmin")
        await resolver.resolve("RocketPoolToken")
        self.assertIs(first, second)
        self.assertEqual(self.chain.network_queries, 1)

    async def test_configured_network_skips_query(self) -> None:
        await self._resolver(NETWORK_ID).resolve("RocketAdmin")
        self.assertEqual(self.chain.network_queries, 0)

    async def test_unregistered_network(self) -> None:
        with self.assertRaises(UnknownNetwork) as ctx:
            await self._resolver("99").resolve("RocketAdmin")
        self.assertEqual(ctx.exception.exit_code, 3)
        self.assertEqual(ctx.exception.network_id, "99")

    async def test_runtime_contract_has_no_deployment(self) -> None:
        with self.assertRaises(UnknownNetwork):
            await self._resolver().resolve("RocketGroupContract")

    async def test_missing_artifact(self) -> None:
        with self.assertRaises(UnknownContract):
            await self._resolver().resolve("RocketMissing")

    async def test_invalid_recorded_address(self) -> None:
        data = {"abi": [], "networks": {NETWORK_ID: {"address": "0x1234"}}}
        (self.dir / "Broken.json").write_text(json.dumps(data), encoding="utf-8")
        with self.assertRaises(UnknownNetwork):
            await self._resolver().resolve("Broken")

    async def test_bind(self) -> None:
        addr = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
        ref = await self._resolver(NETWORK_ID).bind("RocketGroupContract", addr)
        self.assertEqual(ref.address, Web3.to_checksum_address(addr))
        self.assertEqual(ref.method("addDepositor", 1).inputs, ("address",))
        with self.assertRaises(UsageError):
            await self._resolver().bind("RocketGroupContract", "0xnope")


class TestArtifactStore(unittest.TestCase):
    def test_parse_keeps_only_addressed_networks(self) -> None:
        art = parse_artifact("X", {"abi": [], "networks": {"1": {"address": "0xab"}, "2": {}, "3": "junk"}})
        self.assertEqual(art.networks, {"1": "0xab"})
        self.assertEqual(art.address_for(1), "0xab")
        self.assertIsNone(art.address_for("2"))

    def test_parse_requires_abi(self) -> None:
        with self.assertRaises(UnknownContract):
            parse_artifact("X", {"networks": {}})

    def test_unreadable_local_artifact(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            Path(d, "Bad.json").write_text("{not json", encoding="utf-8")
            with self.assertRaises(UnknownContract):
                ArtifactStore(d).load("Bad")

    def test_remote_fetch(self) -> None:
        store = ArtifactStore("https://example.invalid/build/")
        resp = mock.Mock(status_code=200)
        resp.json.return_value = {"abi": [], "networks": {"5": {"address": "0xab"}}}
        with mock.patch.object(store._session, "get", return_value=resp) as get:
            art = store.load("RocketAdmin")
        get.assert_called_once_with("https://example.invalid/build/RocketAdmin.json", timeout=store.timeout_s)
        self.assertEqual(art.address_for("5"), "0xab")
        self.assertTrue(store._session.headers["User-Agent"].startswith("rpadmin/"))
        store.close()

    def test_remote_errors(self) -> None:
        store = ArtifactStore("http://example.invalid")
        with mock.patch.object(store._session, "get", return_value=mock.Mock(status_code=404)):
            with self.assertRaises(UnknownContract):
                store.load("RocketAdmin")
        with mock.patch.object(store._session, "get", side_effect=requests.ConnectionError("refused")):
            with self.assertRaises(UnknownContract):
                store.load("RocketAdmin")
        store.close()


if __name__ == "__main__":
    unittest.main()
