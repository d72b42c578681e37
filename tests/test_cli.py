import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from typing import List, Tuple
from unittest import mock

from rpadmin import cli

from fakes import NETWORK_ID, FakeChain, write_artifacts


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        write_artifacts(self.dir)
        self.chain = FakeChain()
        patcher = mock.patch("rpadmin.dispatcher.Web3ChainClient", return_value=self.chain)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def _main(self, *argv: str) -> Tuple[int, str, str]:
        base = ["--config", str(self.dir / "config.json"), "--artifacts", str(self.dir), "--network", NETWORK_ID]
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(base + list(argv))
        return ctx.exception.code, out.getvalue(), err.getvalue()

    def test_settings_list(self) -> None:
        rc, out, _ = self._main("settings")
        self.assertEqual(rc, 0)
        self.assertIn("deposit.enabled", out)
        self.assertIn("minipool.staking-durations", out)

    def test_settings_json(self) -> None:
        rc, out, _ = self._main("--json", "settings")
        names: List[str] = [row["name"] for row in json.loads(out)]
        self.assertEqual(rc, 0)
        self.assertIn("group.new-fee", names)

    def test_set_success(self) -> None:
        rc, out, err = self._main("set", "deposit.enabled", "false")
        self.assertEqual(rc, 0, err)
        self.assertIn("deposit.enabled set to false", out)
        self.assertEqual(self.chain.sent[0]["args"], (False,))
        self.assertTrue(self.chain.closed)

    def test_coercion_failure_exit_code(self) -> None:
        rc, out, err = self._main("set", "deposit.enabled", "maybe")
        self.assertEqual(rc, 2)
        self.assertEqual(out, "")
        self.assertTrue(err.startswith("error: "))
        self.assertEqual(self.chain.sent, [])

    def test_non_positive_gas_limit_flag(self) -> None:
        rc, _, err = self._main("--gas-limit", "-5", "set", "deposit.enabled", "true")
        self.assertEqual(rc, 2)
        self.assertIn("gas_limit", err)
        self.assertEqual(self.chain.sent, [])

    def test_oversized_mint_amount(self) -> None:
        rc, _, err = self._main("mint", "0x2222222222222222222222222222222222222222", "9" * 80)
        self.assertEqual(rc, 2)
        self.assertTrue(err.startswith("error: "))
        self.assertNotIn("Traceback", err)

    def test_unknown_setting_exit_code(self) -> None:
        rc, _, err = self._main("get", "nope")
        self.assertEqual(rc, 2)
        self.assertIn("unknown setting", err)

    def test_group_subcommand(self) -> None:
        self.chain.call_results[("RocketGroupSettings", "getNewFee")] = 0
        self.chain.events[("RocketGroupAPI", "add")] = {
            "GroupAdd": [{"ID": "0x3333333333333333333333333333333333333333"}]
        }
        rc, out, err = self._main("--json", "group", "add", "Acme", "10")
        self.assertEqual(rc, 0, err)
        body = json.loads(out)
        self.assertTrue(body["ok"])
        self.assertEqual(body["data"]["group"], "0x3333333333333333333333333333333333333333")

    def test_credentials_publish_flag(self) -> None:
        rc, out, err = self._main("credentials", "--publish", "00" * 48)
        self.assertEqual(rc, 0, err)
        self.assertIn("published", out)
        self.assertEqual(len(self.chain.sent), 1)

    def test_init(self) -> None:
        rc, out, _ = self._main("init")
        self.assertEqual(rc, 0)
        self.assertTrue((self.dir / "config.json").exists())
        self.assertIn("config.json", out)


if __name__ == "__main__":
    unittest.main()
