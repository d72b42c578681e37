"""Error taxonomy shared by every rpadmin command.

Each error carries the process exit code the CLI should use for it:
2 for input problems caught before touching the network, 3 for metadata
resolution failures and 1 for anything the chain or transport rejected.
"""

from typing import Optional


class AdminError(RuntimeError):
    exit_code = 1


# ── Input ──

class UsageError(AdminError):
    exit_code = 2


class ConfigError(UsageError):
    pass


class UnknownSetting(UsageError):
    def __init__(self, name: str):
        super().__init__(f"unknown setting: {name!r} (run `rpadmin settings` for the list)")
        self.name = name


class CoercionError(UsageError):
    pass


class ArityError(CoercionError):
    pass


class SignatureError(UsageError):
    pass


# ── Metadata ──

class ResolutionError(AdminError):
    exit_code = 3


class UnknownContract(ResolutionError):
    pass


class UnknownNetwork(ResolutionError):
    def __init__(self, contract_name: str, network_id: str):
        super().__init__(f"{contract_name} is not deployed on network {network_id}")
        self.contract_name = contract_name
        self.network_id = network_id


class UnknownMethod(ResolutionError):
    def __init__(self, contract_name: str, method: str, arity: Optional[int] = None):
        if arity is None:
            msg = f"{contract_name} has no method {method!r}"
        else:
            msg = f"{contract_name} has no method {method!r} taking {arity} argument(s)"
        super().__init__(msg)
        self.contract_name = contract_name
        self.method = method


# ── Chain ──

class ChainError(AdminError):
    exit_code = 1


class ContractRevert(ChainError):
    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message if not reason else f"{message}: {reason}")
        self.reason = reason


class TransactionFailed(ChainError):
    def __init__(self, message: str, reason: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(message if not reason else f"{message}: {reason}")
        self.reason = reason
        self.tx_hash = tx_hash


class SubmissionError(ChainError):
    pass
