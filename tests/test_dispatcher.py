import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from web3 import Web3

from rpadmin.artifacts import ArtifactStore
from rpadmin.config import AdminConfig
from rpadmin.credentials import derive_withdrawal_credentials
from rpadmin.dispatcher import Dispatcher
from rpadmin.errors import (
    ArityError,
    CoercionError,
    TransactionFailed,
    UnknownNetwork,
    UnknownSetting,
    UsageError,
)

from fakes import ADDRESSES, NETWORK_ID, FakeChain, write_artifacts

ETHER = 10 ** 18
NODE_A = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
NODE_B = "0x2222222222222222222222222222222222222222"
GROUP = "0x3333333333333333333333333333333333333333"
ACCESSOR = "0x4444444444444444444444444444444444444444"


class DispatcherTestCase(unittest.IsolatedAsyncioTestCase):
    network_id = NETWORK_ID

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        write_artifacts(Path(self._tmp.name))
        self.chain = FakeChain()
        config = AdminConfig(network_id=self.network_id, audit_log=False)
        self.dispatcher = Dispatcher(config, chain=self.chain, artifacts=ArtifactStore(self._tmp.name))

    def tearDown(self) -> None:
        self._tmp.cleanup()


class TestSettings(DispatcherTestCase):
    async def test_set_bool(self) -> None:
        result = await self.dispatcher.dispatch("set", ["deposit.enabled", "true"])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(result.exit_code, 0)
        self.assertIn("deposit.enabled set to true", result.message)
        (sent,) = self.chain.sent
        self.assertEqual(sent["contract"], "RocketDepositSettings")
        self.assertEqual(sent["address"], Web3.to_checksum_address(ADDRESSES["RocketDepositSettings"]))
        self.assertEqual(sent["method"], "setDepositAllowed")
        self.assertEqual(sent["args"], (True,))

    async def test_numeric_bool_rejected_before_network(self) -> None:
        result = await self.dispatcher.dispatch("set", ["deposit.enabled", "1"])
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_code, 2)
        self.assertIsInstance(result.error, CoercionError)
        self.assertEqual(self.chain.sent, [])
        self.assertEqual(self.chain.network_queries, 0)

    async def test_unknown_setting(self) -> None:
        result = await self.dispatcher.dispatch("set", ["deposit.nope", "true"])
        self.assertIsInstance(result.error, UnknownSetting)
        self.assertEqual(result.exit_code, 2)

    async def test_arity(self) -> None:
        result = await self.dispatcher.dispatch("set", ["minipool.staking-duration", "3m"])
        self.assertIsInstance(result.error, ArityError)
        self.assertEqual(self.chain.sent, [])

    async def test_two_argument_setting(self) -> None:
        result = await self.dispatcher.dispatch("set", ["minipool.staking-duration", "3m", "1575"])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(self.chain.sent[0]["args"], ("3m", 1575))

    async def test_variadic_setting_sends_list(self) -> None:
        result = await self.dispatcher.dispatch("set", ["minipool.staking-durations", "3m", "6m", "12m"])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(self.chain.sent[0]["args"], (["3m", "6m", "12m"],))

    async def test_get(self) -> None:
        self.chain.call_results[("RocketDepositSettings", "getDepositChunkSize")] = 4 * ETHER
        result = await self.dispatcher.dispatch("get", ["deposit.chunk-size"])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(result.data["value"], 4 * ETHER)
        self.assertEqual(self.chain.sent, [])

    async def test_failed_transaction(self) -> None:
        key = ("RocketDepositSettings", "setDepositAllowed")
        self.chain.receipt_overrides[key] = {"status": 0}
        self.chain.revert_reasons[key] = "Account is not a super user"
        result = await self.dispatcher.dispatch("set", ["deposit.enabled", "false"])
        self.assertIsInstance(result.error, TransactionFailed)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Account is not a super user", result.message)

    async def test_oversized_integer_is_usage_error(self) -> None:
        limit = getattr(sys, "get_int_max_str_digits", lambda: 4300)() or 4300
        result = await self.dispatcher.dispatch("set", ["deposit.minimum", "9" * (limit + 1)])
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, UsageError)
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(self.chain.sent, [])

    async def test_unexpected_error_becomes_result(self) -> None:
        with mock.patch.object(self.chain, "call", side_effect=KeyError("boom")):
            with self.assertLogs("rpadmin.dispatcher", "ERROR"):
                result = await self.dispatcher.dispatch("get", ["deposit.enabled"])
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("failed unexpectedly", result.message)

    async def test_unknown_command(self) -> None:
        result = await self.dispatcher.dispatch("explode", [])
        self.assertEqual(result.exit_code, 2)


class TestUnregisteredNetwork(DispatcherTestCase):
    network_id = "99"

    async def test_resolution_error_exit_code(self) -> None:
        result = await self.dispatcher.dispatch("set", ["deposit.enabled", "true"])
        self.assertIsInstance(result.error, UnknownNetwork)
        self.assertEqual(result.exit_code, 3)
        self.assertEqual(self.chain.sent, [])


class TestGroups(DispatcherTestCase):
    async def test_group_add_pays_fee_and_reports_group(self) -> None:
        self.chain.call_results[("RocketGroupSettings", "getNewFee")] = ETHER // 2
        self.chain.events[("RocketGroupAPI", "add")] = {"GroupAdd": [{"ID": GROUP, "name": "Acme"}]}
        result = await self.dispatcher.dispatch("group-add", ["Acme", "25"])
        self.assertTrue(result.ok, result.message)
        (sent,) = self.chain.sent
        self.assertEqual(sent["method"], "add")
        self.assertEqual(sent["args"], ("Acme", 25))
        self.assertEqual(sent["value"], ETHER // 2)
        self.assertEqual(result.data["group"], GROUP)
        self.assertIn(GROUP, result.message)

    async def test_group_add_without_event(self) -> None:
        self.chain.call_results[("RocketGroupSettings", "getNewFee")] = 0
        result = await self.dispatcher.dispatch("group-add", ["Acme", "25"])
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_code, 1)

    async def test_group_accessor(self) -> None:
        self.chain.events[("RocketGroupAPI", "createDefaultAccessor")] = {
            "GroupCreateDefaultAccessor": [{"ID": GROUP, "accessorAddress": ACCESSOR}]
        }
        result = await self.dispatcher.dispatch("group-accessor", [GROUP])
        self.assertTrue(result.ok, result.message)
        created, added = self.chain.sent
        self.assertEqual(created["method"], "createDefaultAccessor")
        self.assertEqual(added["contract"], "RocketGroupContract")
        self.assertEqual(added["address"], Web3.to_checksum_address(GROUP))
        self.assertEqual(added["args"], (Web3.to_checksum_address(ACCESSOR),))

    async def test_deposit(self) -> None:
        result = await self.dispatcher.dispatch("deposit", [ACCESSOR, "3m", "16"])
        self.assertTrue(result.ok, result.message)
        (sent,) = self.chain.sent
        self.assertEqual(sent["contract"], "RocketGroupAccessorContract")
        self.assertEqual(sent["args"], ("3m",))
        self.assertEqual(sent["value"], 16 * ETHER)


class TestFundsAndNodes(DispatcherTestCase):
    async def test_mint(self) -> None:
        result = await self.dispatcher.dispatch("mint", [NODE_A, "100"])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(self.chain.sent[0]["args"], (Web3.to_checksum_address(NODE_A), 100 * ETHER))

    async def test_mint_amount_beyond_uint256(self) -> None:
        result = await self.dispatcher.dispatch("mint", [NODE_A, "9" * 80])
        self.assertIsInstance(result.error, CoercionError)
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(self.chain.sent, [])

    async def test_mint_zero_rejected(self) -> None:
        result = await self.dispatcher.dispatch("mint", [NODE_A, "0"])
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(self.chain.sent, [])

    async def test_fund_every_address(self) -> None:
        result = await self.dispatcher.dispatch("fund", ["2", NODE_A, NODE_B])
        self.assertTrue(result.ok, result.message)
        self.assertEqual(
            sorted(t["to"] for t in self.chain.transfers),
            sorted(Web3.to_checksum_address(a) for a in (NODE_A, NODE_B)),
        )
        self.assertTrue(all(t["value"] == 2 * ETHER for t in self.chain.transfers))

    async def test_fund_partial_failure(self) -> None:
        self.chain.fail_transfers.add(Web3.to_checksum_address(NODE_B))
        result = await self.dispatcher.dispatch("fund", ["1", NODE_A, NODE_B])
        self.assertFalse(result.ok)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("funded 1 of 2", result.message)

    async def test_trust_uses_numeric_flag(self) -> None:
        result = await self.dispatcher.dispatch("trust", ["1", NODE_A, NODE_B])
        self.assertTrue(result.ok, result.message)
        self.assertEqual([s["args"][1] for s in self.chain.sent], [True, True])
        self.chain.sent.clear()
        result = await self.dispatcher.dispatch("trust", ["0", NODE_A])
        self.assertEqual(self.chain.sent[0]["args"], (Web3.to_checksum_address(NODE_A), False))

    async def test_trust_rejects_literal_flag(self) -> None:
        result = await self.dispatcher.dispatch("trust", ["true", NODE_A])
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(self.chain.sent, [])

    async def test_trust_needs_a_node(self) -> None:
        result = await self.dispatcher.dispatch("trust", ["1"])
        self.assertIsInstance(result.error, ArityError)


class TestCredentials(DispatcherTestCase):
    pubkey = bytes(range(48))

    async def test_derive_only(self) -> None:
        result = await self.dispatcher.dispatch("credentials", ["0x" + self.pubkey.hex()])
        self.assertTrue(result.ok, result.message)
        expected = "0x" + derive_withdrawal_credentials(self.pubkey).hex()
        self.assertEqual(result.data["withdrawal_credentials"], expected)
        self.assertEqual(self.chain.sent, [])

    async def test_publish(self) -> None:
        result = await self.dispatcher.dispatch("credentials", [self.pubkey.hex()], publish=True)
        self.assertTrue(result.ok, result.message)
        (sent,) = self.chain.sent
        self.assertEqual(sent["method"], "setMinipoolWithdrawalCredentials")
        self.assertEqual(sent["args"], (derive_withdrawal_credentials(self.pubkey),))

    async def test_bad_pubkey(self) -> None:
        result = await self.dispatcher.dispatch("credentials", ["0x1234"])
        self.assertEqual(result.exit_code, 2)


class TestRunMany(DispatcherTestCase):
    async def test_independent_dispatches(self) -> None:
        self.chain.call_results[("RocketDepositSettings", "getDepositAllowed")] = True
        self.chain.call_results[("RocketNodeSettings", "getNewAllowed")] = False
        results = await self.dispatcher.run_many([
            ("get", ["deposit.enabled"]),
            ("get", ["node.registration"]),
            ("set", ["nope", "1"]),
        ])
        self.assertEqual([r.ok for r in results], [True, True, False])
        self.assertEqual(results[1].data["value"], False)

    async def test_close(self) -> None:
        async with self.dispatcher as d:
            await d.dispatch("get", ["deposit.enabled"])
        self.assertTrue(self.chain.closed)


if __name__ == "__main__":
    unittest.main()
