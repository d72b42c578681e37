import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .commands import COMMANDS
from .config import build_config, load_config, load_environment, write_default_config
from .dispatcher import Dispatcher, DispatchResult
from .errors import AdminError
from .settings import list_settings


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _config_path(args: argparse.Namespace) -> Optional[Path]:
    return Path(args.config).expanduser() if args.config else None


def _build_config(args: argparse.Namespace):
    load_environment()
    return build_config(
        load_config(_config_path(args)),
        rpc_url=args.rpc_url,
        network_id=args.network,
        artifacts=args.artifacts,
        from_address=args.from_address,
        gas_limit=args.gas_limit,
        receipt_timeout=args.timeout,
    )


def _print_result(args: argparse.Namespace, result: DispatchResult) -> int:
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    elif result.ok:
        print(result.message)
    if not result.ok:
        print(f"error: {result.message}", file=sys.stderr)
    return result.exit_code


async def _dispatch(args: argparse.Namespace, command: str, tokens: List[str], **options: Any) -> DispatchResult:
    config = _build_config(args)
    async with Dispatcher(config) as dispatcher:
        return await dispatcher.dispatch(command, tokens, **options)


def _run(args: argparse.Namespace, command: str, **options: Any) -> int:
    try:
        result = asyncio.run(_dispatch(args, command, list(args.tokens), **options))
    except AdminError as e:
        # Config and client construction fail before a dispatch exists.
        result = DispatchResult(ok=False, command=command, message=str(e), error=e)
    return _print_result(args, result)


def cmd_init(args: argparse.Namespace) -> int:
    path = write_default_config(overwrite=args.overwrite, path=_config_path(args))
    print(str(path))
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    rows = list_settings()
    if args.json:
        out: List[Dict[str, Any]] = [
            {
                "name": s.name,
                "contract": s.contract,
                "method": s.method,
                "getter": s.getter,
                "usage": s.usage(),
                "description": s.description,
            }
            for s in rows
        ]
        print(json.dumps(out, indent=2))
        return 0
    width = max(len(s.name) for s in rows)
    for s in rows:
        print(f"{s.name.ljust(width)}  {s.usage():<28}  {s.description}")
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    return _run(args, "get")


def cmd_set(args: argparse.Namespace) -> int:
    return _run(args, "set")


def cmd_group_add(args: argparse.Namespace) -> int:
    return _run(args, "group-add")


def cmd_group_accessor(args: argparse.Namespace) -> int:
    return _run(args, "group-accessor")


def cmd_mint(args: argparse.Namespace) -> int:
    return _run(args, "mint")


def cmd_fund(args: argparse.Namespace) -> int:
    return _run(args, "fund")


def cmd_trust(args: argparse.Namespace) -> int:
    return _run(args, "trust")


def cmd_credentials(args: argparse.Namespace) -> int:
    return _run(args, "credentials", publish=args.publish)


def cmd_deposit(args: argparse.Namespace) -> int:
    return _run(args, "deposit")


def _command_parser(sub: Any, name: str, command: str, func: Any) -> argparse.ArgumentParser:
    # Tokens are coerced by the command itself so every shape error maps to exit code 2.
    cmd = COMMANDS[command]
    sp = sub.add_parser(name, help=cmd.help, usage=f"rpadmin {command.replace('-', ' ')} {cmd.usage()}")
    sp.add_argument("tokens", nargs="*", help=cmd.usage())
    sp.set_defaults(func=func)
    return sp


def main(argv: Optional[List[str]] = None) -> None:
    p = argparse.ArgumentParser(prog="rpadmin", description="Rocket Pool network administration")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("--config", default=None, help="Config file (default ~/.rpadmin/config.json)")
    p.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint of the node")
    p.add_argument("--network", default=None, help="Network id used to look up deployments")
    p.add_argument("--artifacts", default=None, help="Directory or URL holding <Contract>.json artifacts")
    p.add_argument("--from", dest="from_address", default=None, help="Sending account")
    p.add_argument("--gas-limit", type=int, default=None, help="Gas ceiling per transaction")
    p.add_argument("--timeout", type=float, default=None, help="Seconds to wait for each receipt")
    p.add_argument("--json", action="store_true", help="Print results as JSON")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Log to stderr (-vv for debug)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("init", help="Create ~/.rpadmin/config.json")
    sp.add_argument("--overwrite", action="store_true", help="Overwrite existing config")
    sp.set_defaults(func=cmd_init)

    sp = sub.add_parser("settings", help="List the settings `set` and `get` accept")
    sp.set_defaults(func=cmd_settings)

    _command_parser(sub, "get", "get", cmd_get)
    _command_parser(sub, "set", "set", cmd_set)

    group_p = sub.add_parser("group", help="Group management")
    group_sub = group_p.add_subparsers(dest="group_cmd", required=True)
    _command_parser(group_sub, "add", "group-add", cmd_group_add)
    _command_parser(group_sub, "accessor", "group-accessor", cmd_group_accessor)

    _command_parser(sub, "mint", "mint", cmd_mint)
    _command_parser(sub, "fund", "fund", cmd_fund)
    _command_parser(sub, "trust", "trust", cmd_trust)
    sp = _command_parser(sub, "credentials", "credentials", cmd_credentials)
    sp.add_argument("--publish", action="store_true", help="Also store them in the minipool settings contract")
    _command_parser(sub, "deposit", "deposit", cmd_deposit)

    args = p.parse_args(argv)
    _setup_logging(args.verbose)
    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
