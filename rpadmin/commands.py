"""The closed set of administrative operations.

Each operation is a thin configuration: the shape of its positional tokens
(a SettingDescriptor) and a handler that resolves contracts and submits
calls through the dispatcher's shared components.
"""

import asyncio
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from web3 import Web3

from .coercion import BoolMode, ParamType, SettingDescriptor, coerce
from .credentials import derive_withdrawal_credentials, parse_public_key
from .errors import AdminError, ChainError, CoercionError, UsageError
from .models import TransactionOutcome
from .settings import GROUP_SETTINGS, MINIPOOL_SETTINGS, get_setting

if TYPE_CHECKING:
    from .dispatcher import Dispatcher

GROUP_API = "RocketGroupAPI"
GROUP_CONTRACT = "RocketGroupContract"
GROUP_ACCESSOR = "RocketGroupAccessorContract"
TOKEN_CONTRACT = "RocketPoolToken"
ADMIN_CONTRACT = "RocketAdmin"


@dataclass
class CommandResult:
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[["Dispatcher", Sequence[Any], Dict[str, Any]], Awaitable[CommandResult]]


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    descriptor: Optional[SettingDescriptor] = None
    help: str = ""

    async def run(self, ctx: "Dispatcher", tokens: Sequence[str], options: Dict[str, Any]) -> CommandResult:
        # set/get take a setting name first and coerce against that setting.
        values: Sequence[Any] = list(tokens) if self.descriptor is None else coerce(self.descriptor, tokens)
        return await self.handler(ctx, values, options)

    def usage(self) -> str:
        if self.descriptor is None:
            return "<setting> [values...]"
        return self.descriptor.usage()


def _ether(amount: int, what: str) -> int:
    if amount <= 0:
        raise CoercionError(f"{what} must be a positive whole number of ether, got {amount}")
    try:
        return Web3.to_wei(amount, "ether")
    except ValueError:
        raise CoercionError(f"{what} of {amount} ether does not fit in a uint256 wei value")


def _tx_data(outcome: TransactionOutcome) -> Dict[str, Any]:
    return outcome.to_dict()


def _required_event(outcome: TransactionOutcome, event: str, name: str) -> str:
    value = outcome.event_field(event, name)
    if not value:
        raise ChainError(f"transaction {outcome.tx_hash} succeeded but emitted no {event}.{name}")
    return str(value)


# ── Settings ──

async def _set_setting(ctx: "Dispatcher", tokens: Sequence[str], options: Dict[str, Any]) -> CommandResult:
    if not tokens:
        raise UsageError("set requires a setting name")
    setting = get_setting(tokens[0])
    values = coerce(setting, tokens[1:])
    ref = await ctx.resolver.resolve(setting.contract)
    outcome = await ctx.invoker.invoke(ref, setting.method, values, state_changing=True)
    outcome.raise_for_status()
    shown = " ".join(tokens[1:]) or "(empty)"
    return CommandResult(f"{setting.name} set to {shown} (tx {outcome.tx_hash})", _tx_data(outcome))


async def _get_setting(ctx: "Dispatcher", tokens: Sequence[str], options: Dict[str, Any]) -> CommandResult:
    if len(tokens) != 1:
        raise UsageError("get takes exactly one setting name")
    setting = get_setting(tokens[0])
    if not setting.getter:
        raise UsageError(f"{setting.name} cannot be read back")
    ref = await ctx.resolver.resolve(setting.contract)
    value = await ctx.invoker.invoke(ref, setting.getter)
    return CommandResult(f"{setting.name} = {value}", {"setting": setting.name, "value": value})


# ── Groups ──

async def _group_add(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    name, staking_fee = values
    if staking_fee < 0:
        raise CoercionError("staking fee cannot be negative")
    settings_ref = await ctx.resolver.resolve(GROUP_SETTINGS)
    api_ref = await ctx.resolver.resolve(GROUP_API)
    request = ctx.invoker.prepare(api_ref, "add", [name, staking_fee])

    fee = await ctx.invoker.invoke(settings_ref, "getNewFee")
    outcome = await ctx.invoker.invoke(api_ref, request.method.name, request.args, state_changing=True, value=fee)
    outcome.raise_for_status()
    group = _required_event(outcome, "GroupAdd", "ID")
    data = _tx_data(outcome)
    data.update({"group": group, "fee_paid": fee})
    return CommandResult(f"created group {name!r} at {group} (fee {fee} wei, tx {outcome.tx_hash})", data)


async def _group_accessor(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    (group,) = values
    api_ref = await ctx.resolver.resolve(GROUP_API)
    group_ref = await ctx.resolver.bind(GROUP_CONTRACT, group)
    ctx.invoker.prepare(api_ref, "createDefaultAccessor", [group])
    # Check the follow-up call exists before the first transaction goes out.
    group_ref.method("addDepositor", 1)

    created = await ctx.invoker.invoke(api_ref, "createDefaultAccessor", [group], state_changing=True)
    created.raise_for_status()
    accessor = Web3.to_checksum_address(_required_event(created, "GroupCreateDefaultAccessor", "accessorAddress"))

    added = await ctx.invoker.invoke(group_ref, "addDepositor", [accessor], state_changing=True)
    added.raise_for_status()
    return CommandResult(
        f"created accessor {accessor} for group {group} (tx {created.tx_hash}, {added.tx_hash})",
        {"group": group, "accessor": accessor, "transactions": [_tx_data(created), _tx_data(added)]},
    )


# ── Tokens and funds ──

async def _mint(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    to, amount = values
    wei = _ether(amount, "amount")
    ref = await ctx.resolver.resolve(TOKEN_CONTRACT)
    outcome = await ctx.invoker.invoke(ref, "mint", [to, wei], state_changing=True)
    outcome.raise_for_status()
    return CommandResult(f"minted {amount} tokens to {to} (tx {outcome.tx_hash})", _tx_data(outcome))


async def _fund(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    amount, first, rest = values
    wei = _ether(amount, "amount")
    targets: List[str] = [first] + list(rest)

    results = await asyncio.gather(
        *(ctx.submitter.transfer(to, wei) for to in targets),
        return_exceptions=True,
    )
    funded: List[str] = []
    failures: List[str] = []
    data: Dict[str, Any] = {"transactions": {}}
    for to, result in zip(targets, results):
        if isinstance(result, TransactionOutcome) and result.success:
            funded.append(to)
            data["transactions"][to] = _tx_data(result)
        elif isinstance(result, TransactionOutcome):
            failures.append(f"{to}: {result.error_message}")
        elif isinstance(result, AdminError):
            failures.append(f"{to}: {result}")
        else:
            raise result
    if failures:
        raise ChainError(f"funded {len(funded)} of {len(targets)} account(s); " + "; ".join(failures))
    return CommandResult(f"sent {amount} ETH to {len(funded)} account(s)", data)


# ── Nodes ──

async def _trust(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    trusted, first, rest = values
    nodes: List[str] = [first] + list(rest)
    ref = await ctx.resolver.resolve(ADMIN_CONTRACT)
    calls = [ctx.invoker.prepare(ref, "setNodeTrusted", [node, trusted]) for node in nodes]

    data: Dict[str, Any] = {"trusted": trusted, "transactions": {}}
    for node, request in zip(nodes, calls):
        outcome = await ctx.submitter.submit(request)
        outcome.raise_for_status()
        data["transactions"][node] = _tx_data(outcome)
    state = "trusted" if trusted else "untrusted"
    return CommandResult(f"marked {len(nodes)} node(s) {state}", data)


async def _credentials(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    (pubkey_hex,) = values
    try:
        pubkey = parse_public_key(pubkey_hex)
    except ValueError as e:
        raise CoercionError(str(e))
    creds = derive_withdrawal_credentials(pubkey)
    creds_hex = "0x" + creds.hex()
    data: Dict[str, Any] = {"public_key": "0x" + pubkey.hex(), "withdrawal_credentials": creds_hex}
    if not options.get("publish"):
        return CommandResult(f"withdrawal credentials: {creds_hex}", data)

    ref = await ctx.resolver.resolve(MINIPOOL_SETTINGS)
    outcome = await ctx.invoker.invoke(ref, "setMinipoolWithdrawalCredentials", [creds], state_changing=True)
    outcome.raise_for_status()
    data.update(_tx_data(outcome))
    return CommandResult(f"published withdrawal credentials {creds_hex} (tx {outcome.tx_hash})", data)


# ── Deposits ──

async def _deposit(ctx: "Dispatcher", values: Sequence[Any], options: Dict[str, Any]) -> CommandResult:
    accessor, duration, amount = values
    wei = _ether(amount, "deposit amount")
    ref = await ctx.resolver.bind(GROUP_ACCESSOR, accessor)
    outcome = await ctx.invoker.invoke(ref, "deposit", [duration], state_changing=True, value=wei)
    outcome.raise_for_status()
    return CommandResult(
        f"deposited {amount} ETH for {duration!r} via {accessor} (tx {outcome.tx_hash})",
        _tx_data(outcome),
    )


def _shape(name: str, types: Sequence[ParamType], labels: Sequence[str], variadic: bool = False,
           bool_mode: BoolMode = BoolMode.LITERAL) -> SettingDescriptor:
    return SettingDescriptor(name=name, types=tuple(types), labels=tuple(labels), variadic=variadic,
                             bool_mode=bool_mode)


B, I, A, S = ParamType.BOOL, ParamType.INTEGER, ParamType.ADDRESS, ParamType.STRING

_ALL = (
    Command("set", _set_setting, help="Change a network setting"),
    Command("get", _get_setting, help="Read a network setting"),
    Command("group-add", _group_add, _shape("group add", [S, I], ["name", "staking-fee"]),
            "Register a new group, paying the new-group fee"),
    Command("group-accessor", _group_accessor, _shape("group accessor", [A], ["group"]),
            "Create a group's default accessor and register it as a depositor"),
    Command("mint", _mint, _shape("mint", [A, I], ["address", "amount"]), "Mint tokens to an address"),
    Command("fund", _fund, _shape("fund", [I, A, A], ["amount", "address", "address"], variadic=True),
            "Send ether to one or more accounts"),
    Command("trust", _trust,
            _shape("trust", [B, A, A], ["0|1", "node", "node"], variadic=True, bool_mode=BoolMode.NUMERIC),
            "Mark node operators trusted (1) or untrusted (0)"),
    Command("credentials", _credentials, _shape("credentials", [S], ["pubkey"]),
            "Derive (and optionally publish) withdrawal credentials"),
    Command("deposit", _deposit, _shape("deposit", [A, S, I], ["accessor", "duration-id", "amount"]),
            "Deposit ether through a group accessor"),
)

COMMANDS: Mapping[str, Command] = MappingProxyType({c.name: c for c in _ALL})


def get_command(name: str) -> Command:
    try:
        return COMMANDS[name]
    except KeyError:
        raise UsageError(f"unknown command: {name!r}")
