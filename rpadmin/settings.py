"""Registry of network settings an operator can toggle with ``rpadmin set``."""

from types import MappingProxyType
from typing import List, Mapping

from .coercion import ParamType, SettingDescriptor
from .errors import UnknownSetting

B = ParamType.BOOL
I = ParamType.INTEGER
A = ParamType.ADDRESS
S = ParamType.STRING

DEPOSIT_SETTINGS = "RocketDepositSettings"
MINIPOOL_SETTINGS = "RocketMinipoolSettings"
NODE_SETTINGS = "RocketNodeSettings"
GROUP_SETTINGS = "RocketGroupSettings"


def _setting(name, contract, method, types, getter=None, description="", labels=(), variadic=False):
    return SettingDescriptor(
        name=name,
        types=tuple(types),
        variadic=variadic,
        contract=contract,
        method=method,
        getter=getter,
        description=description,
        labels=tuple(labels),
    )


_ALL = (
    # deposits
    _setting("deposit.enabled", DEPOSIT_SETTINGS, "setDepositAllowed", [B], "getDepositAllowed",
             "accept user deposits", ["enabled"]),
    _setting("deposit.processing", DEPOSIT_SETTINGS, "setProcessDepositsEnabled", [B], "getProcessDepositsEnabled",
             "assign queued deposits to minipools", ["enabled"]),
    _setting("deposit.refunds", DEPOSIT_SETTINGS, "setRefundDepositsAllowed", [B], "getRefundDepositsAllowed",
             "allow refunds of queued deposits", ["enabled"]),
    _setting("deposit.withdrawals", DEPOSIT_SETTINGS, "setWithdrawalAllowed", [B], "getWithdrawalAllowed",
             "allow users to withdraw deposits", ["enabled"]),
    _setting("deposit.chunk-size", DEPOSIT_SETTINGS, "setDepositChunkSize", [I], "getDepositChunkSize",
             "deposit chunk size in wei", ["wei"]),
    _setting("deposit.minimum", DEPOSIT_SETTINGS, "setMinimumDeposit", [I], "getMinimumDeposit",
             "minimum user deposit in wei", ["wei"]),
    _setting("deposit.maximum", DEPOSIT_SETTINGS, "setMaximumDepositBalance", [I], "getMaximumDepositBalance",
             "maximum user deposit balance in wei", ["wei"]),
    # minipools
    _setting("minipool.new-enabled", MINIPOOL_SETTINGS, "setMinipoolNewEnabled", [B], "getMinipoolNewEnabled",
             "allow new minipools", ["enabled"]),
    _setting("minipool.closing-enabled", MINIPOOL_SETTINGS, "setMinipoolClosingEnabled", [B],
             "getMinipoolClosingEnabled", "allow minipools to close", ["enabled"]),
    _setting("minipool.max", MINIPOOL_SETTINGS, "setMinipoolMax", [I], "getMinipoolMax",
             "maximum number of active minipools (0 = unlimited)", ["count"]),
    _setting("minipool.staking-duration", MINIPOOL_SETTINGS, "setMinipoolStakingDuration", [S, I], None,
             "set the epoch length of a staking duration id", ["duration-id", "epochs"]),
    _setting("minipool.staking-durations", MINIPOOL_SETTINGS, "setMinipoolStakingDurations", [S], None,
             "replace the accepted staking duration ids", ["duration-id"], variadic=True),
    # nodes
    _setting("node.registration", NODE_SETTINGS, "setNewAllowed", [B], "getNewAllowed",
             "allow new node registrations", ["enabled"]),
    _setting("node.deposits", NODE_SETTINGS, "setDepositAllowed", [B], "getDepositAllowed",
             "allow node deposits", ["enabled"]),
    _setting("node.withdrawals", NODE_SETTINGS, "setWithdrawalAllowed", [B], "getWithdrawalAllowed",
             "allow node withdrawals", ["enabled"]),
    # groups
    _setting("group.new-allowed", GROUP_SETTINGS, "setNewAllowed", [B], "getNewAllowed",
             "allow new groups", ["enabled"]),
    _setting("group.new-fee", GROUP_SETTINGS, "setNewFee", [I], "getNewFee",
             "fee charged to register a group, in wei", ["wei"]),
    _setting("group.fee-address", GROUP_SETTINGS, "setNewFeeAddress", [A], "getNewFeeAddress",
             "address receiving new-group fees", ["address"]),
)

SETTINGS: Mapping[str, SettingDescriptor] = MappingProxyType({s.name: s for s in _ALL})


def get_setting(name: str) -> SettingDescriptor:
    try:
        return SETTINGS[name]
    except KeyError:
        raise UnknownSetting(name)


def list_settings() -> List[SettingDescriptor]:
    return sorted(SETTINGS.values(), key=lambda s: s.name)
